from sqlalchemy import Column,Integer,String,Float,Boolean,DateTime,ForeignKey,Enum,Text
from sqlalchemy.orm import relationship
from .database import Base
from .utils import utcnow
import enum

class OrderStatus(str, enum.Enum):
  PENDING='pending';ACCEPTED='accepted';PREPARING='preparing';READY='ready';SERVED='served';CANCELLED='cancelled'
class PaymentMethod(str, enum.Enum):
  CASH='cash';CARD='card';UPI='upi'
class OrderType(str, enum.Enum):
  DINE_IN='dine-in';TAKEAWAY='takeaway'
class Category(str, enum.Enum):
  STARTERS='starters';BIRYANIS='biryanis';MAIN_COURSE='main-course';SOFT_DRINKS='soft-drinks';SPECIALS='specials'
class SpicyLevel(str, enum.Enum):
  MILD='mild';MEDIUM='medium';SPICY='spicy';EXTRA_SPICY='extra-spicy'
class Role(str, enum.Enum):
  ADMIN='admin';STAFF='staff'

def _enum(cls,name):
  # store the lowercase values ('main-course'), not the member names
  return Enum(cls,name=name,values_callable=lambda e:[m.value for m in e],native_enum=False,length=20)

class User(Base):
  __tablename__='users'
  id=Column(Integer,primary_key=True)
  name=Column(String,nullable=False)
  email=Column(String,unique=True,nullable=False)
  password_hash=Column(String,nullable=False)
  role=Column(_enum(Role,'role'),default=Role.ADMIN,nullable=False)
  is_active=Column(Boolean,default=True,nullable=False)
  last_login=Column(DateTime(timezone=True))
  reset_token_hash=Column(String,index=True)
  reset_expires=Column(DateTime(timezone=True))
  created_at=Column(DateTime(timezone=True),default=utcnow)
class MenuItem(Base):
  __tablename__='menu_items'
  id=Column(Integer,primary_key=True)
  name=Column(String,nullable=False)
  description=Column(Text,default='')
  price=Column(Float,nullable=False)
  category=Column(_enum(Category,'category'),nullable=False,index=True)
  image=Column(String,default='')
  rating=Column(Float,default=0)
  available=Column(Boolean,default=True,nullable=False)
  spicy_level=Column(_enum(SpicyLevel,'spicy_level'),default=SpicyLevel.MEDIUM)
  preparation_time=Column(Integer,default=15)
  created_at=Column(DateTime(timezone=True),default=utcnow)
class Chef(Base):
  __tablename__='chefs'
  id=Column(Integer,primary_key=True)
  name=Column(String,nullable=False)
  specialty=Column(String,nullable=False)
  experience=Column(Integer,nullable=False)
  image=Column(String,default='')
  bio=Column(Text,default='')
  available=Column(Boolean,default=True,nullable=False)
  rating=Column(Float,default=0)
class ContactMessage(Base):
  __tablename__='contact_messages'
  id=Column(Integer,primary_key=True)
  name=Column(String,nullable=False)
  email=Column(String,nullable=False)
  phone=Column(String)
  message=Column(Text,nullable=False)
  read=Column(Boolean,default=False,nullable=False)
  created_at=Column(DateTime(timezone=True),default=utcnow)
class Order(Base):
  __tablename__='orders'
  id=Column(Integer,primary_key=True)
  order_id=Column(String(12),unique=True,nullable=False)
  customer_name=Column(String,nullable=False)
  table_number=Column(Integer,nullable=False)
  total_amount=Column(Float,nullable=False)
  status=Column(_enum(OrderStatus,'order_status'),default=OrderStatus.PENDING,nullable=False)
  payment_method=Column(_enum(PaymentMethod,'payment_method'),default=PaymentMethod.CASH,nullable=False)
  order_type=Column(_enum(OrderType,'order_type'),default=OrderType.DINE_IN,nullable=False)
  created_at=Column(DateTime(timezone=True),default=utcnow,index=True)
  accepted_at=Column(DateTime(timezone=True))
  completed_at=Column(DateTime(timezone=True))
  items=relationship('OrderItem',back_populates='order',cascade='all, delete-orphan',order_by='OrderItem.position')
  status_history=relationship('OrderStatusChange',back_populates='order',cascade='all, delete-orphan',order_by='OrderStatusChange.id')
class OrderItem(Base):
  __tablename__='order_items'
  id=Column(Integer,primary_key=True)
  order_id=Column(Integer,ForeignKey('orders.id'),nullable=False)
  position=Column(Integer,nullable=False,default=0)
  # no FK: the snapshot outlives the menu item it was taken from
  item_id=Column(Integer)
  name=Column(String,nullable=False)
  quantity=Column(Integer,nullable=False)
  price=Column(Float,nullable=False)
  special_instructions=Column(String)
  spice_level=Column(String)
  order=relationship('Order',back_populates='items')
class OrderStatusChange(Base):
  __tablename__='order_status_changes'
  id=Column(Integer,primary_key=True)
  order_id=Column(Integer,ForeignKey('orders.id'),nullable=False,index=True)
  status=Column(_enum(OrderStatus,'order_status'),nullable=False)
  source=Column(String(32),default='')
  created_at=Column(DateTime(timezone=True),default=utcnow)
  order=relationship('Order',back_populates='status_history')
