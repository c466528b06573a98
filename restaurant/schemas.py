from datetime import datetime
from typing import List,Optional
from pydantic import BaseModel,ConfigDict,EmailStr,Field,field_validator
from pydantic.alias_generators import to_camel
from .models import Category,OrderStatus,OrderType,PaymentMethod,Role,SpicyLevel

# camelCase on the wire, snake_case in Python
class Schema(BaseModel):
  model_config=ConfigDict(alias_generator=to_camel,populate_by_name=True,from_attributes=True)

def _strip_required(v):
  v=(v or '').strip()
  if not v: raise ValueError('must not be empty')
  return v

# auth
class RegisterIn(Schema):
  name:str; email:EmailStr; password:str=Field(min_length=6)
  @field_validator('name')
  @classmethod
  def check_name(cls,v): return _strip_required(v)
class LoginIn(Schema):
  email:EmailStr; password:str
class ChangePasswordIn(Schema):
  current_password:str; new_password:str=Field(min_length=6)
class ForgotPasswordIn(Schema):
  email:EmailStr
class ResetPasswordIn(Schema):
  password:str=Field(min_length=6)
class UserOut(Schema):
  id:int; name:str; email:str; role:Role
class TokenOut(Schema):
  message:str; token:str; user:UserOut
class MessageOut(Schema):
  message:str

# menu
class MenuItemIn(Schema):
  name:str; description:str=''; price:float=Field(ge=0); category:Category
  image:str=''; rating:float=Field(0,ge=0,le=5); available:bool=True
  spicy_level:SpicyLevel=SpicyLevel.MEDIUM; preparation_time:int=Field(15,gt=0)
  @field_validator('name')
  @classmethod
  def check_name(cls,v): return _strip_required(v)
class MenuItemUpdate(Schema):
  name:Optional[str]=None; description:Optional[str]=None; price:Optional[float]=Field(None,ge=0)
  category:Optional[Category]=None; image:Optional[str]=None; rating:Optional[float]=Field(None,ge=0,le=5)
  available:Optional[bool]=None; spicy_level:Optional[SpicyLevel]=None; preparation_time:Optional[int]=Field(None,gt=0)
  @field_validator('name')
  @classmethod
  def check_name(cls,v): return None if v is None else _strip_required(v)
class MenuItemOut(Schema):
  id:int; name:str; description:Optional[str]=''; price:float; category:Category; image:Optional[str]=''
  rating:float=0; available:bool; spicy_level:Optional[SpicyLevel]=None; preparation_time:Optional[int]=None
  created_at:Optional[datetime]=None
class AvailabilityIn(Schema):
  available:bool
class CategoryStat(Schema):
  category:Category; count:int; available:int
class MenuStatsOut(Schema):
  total_items:int; available_items:int; out_of_stock_items:int; category_stats:List[CategoryStat]

# chefs
class ChefIn(Schema):
  name:str; specialty:str; experience:int=Field(ge=0); image:str=''; bio:str=''
  available:bool=True; rating:float=Field(0,ge=0,le=5)
  @field_validator('name','specialty')
  @classmethod
  def check_required(cls,v): return _strip_required(v)
class ChefUpdate(Schema):
  name:Optional[str]=None; specialty:Optional[str]=None; experience:Optional[int]=Field(None,ge=0)
  image:Optional[str]=None; bio:Optional[str]=None; available:Optional[bool]=None
  rating:Optional[float]=Field(None,ge=0,le=5)
class ChefOut(Schema):
  id:int; name:str; specialty:str; experience:int; image:Optional[str]=''; bio:Optional[str]=''
  available:bool; rating:float=0

# contact
class ContactIn(Schema):
  # checked by hand so the error messages match what the site shows
  name:Optional[str]=None; email:Optional[str]=None; phone:Optional[str]=None; message:Optional[str]=None
class ContactOut(Schema):
  id:int; name:str; email:str; phone:Optional[str]=None; message:str; read:bool; created_at:datetime
class ContactStatsOut(Schema):
  total_messages:int; unread_messages:int; read_messages:int

# orders
class OrderLineIn(Schema):
  item_id:int; quantity:int=Field(ge=1)
  special_instructions:Optional[str]=None; spice_level:Optional[SpicyLevel]=None
class OrderIn(Schema):
  customer_name:str; table_number:int=Field(ge=1); items:List[OrderLineIn]=Field(min_length=1)
  payment_method:PaymentMethod=PaymentMethod.CASH; order_type:OrderType=OrderType.DINE_IN
  @field_validator('customer_name')
  @classmethod
  def check_customer_name(cls,v): return _strip_required(v)
class StatusIn(Schema):
  status:OrderStatus
class OrderLineOut(Schema):
  item_id:Optional[int]=None; name:str; quantity:int; price:float
  special_instructions:Optional[str]=None; spice_level:Optional[str]=None
class StatusChangeOut(Schema):
  status:OrderStatus; source:Optional[str]=''; created_at:datetime
class OrderOut(Schema):
  id:int; order_id:str; customer_name:str; table_number:int; items:List[OrderLineOut]
  total_amount:float; status:OrderStatus; payment_method:PaymentMethod; order_type:OrderType
  created_at:datetime; accepted_at:Optional[datetime]=None; completed_at:Optional[datetime]=None
  status_history:List[StatusChangeOut]=[]
class OrderStatsOut(Schema):
  total_orders:int; pending_orders:int; today_orders:int; total_revenue:float
class HourlyChartOut(Schema):
  labels:List[str]; orders:List[int]; revenue:List[float]

def order_payload(order)->dict:
  """JSON-ready dict of an order, as pushed over the notification channel."""
  return OrderOut.model_validate(order).model_dump(mode='json',by_alias=True)
