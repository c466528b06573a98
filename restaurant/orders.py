import logging,uuid
from dataclasses import dataclass
from typing import Iterable,Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session,selectinload
from . import config
from .catalog import get_menu_item
from .errors import Conflict,InvalidTransition,NotFound,Unavailable
from .events import NEW_ORDER,ORDER_UPDATED,hub
from .models import Order,OrderItem,OrderStatus,OrderStatusChange,OrderType,PaymentMethod
from .schemas import order_payload
from .utils import as_local,today_bounds,utcnow

log=logging.getLogger(__name__)

FLOW=[OrderStatus.PENDING,OrderStatus.ACCEPTED,OrderStatus.PREPARING,OrderStatus.READY,OrderStatus.SERVED]
TERMINAL={OrderStatus.SERVED,OrderStatus.CANCELLED}

@dataclass
class LineRequest:
  item_id:int
  quantity:int
  special_instructions:Optional[str]=None
  spice_level:Optional[str]=None

def new_order_id()->str:
  return f'ORD-{uuid.uuid4().hex[:8].upper()}'

def can_transition(current:OrderStatus,new:OrderStatus)->bool:
  if current==new: return True
  if current in TERMINAL: return False
  if new==OrderStatus.CANCELLED: return current==OrderStatus.PENDING
  return FLOW.index(new)>FLOW.index(current)

def _notify(event,order):
  try: hub.publish(event,order_payload(order))
  except Exception: log.exception('could not publish %s for order %s',event,order.order_id)

def _price_lines(db:Session,lines:Iterable[LineRequest]):
  snapshot=[]; total=0.0
  for pos,line in enumerate(lines):
    try: item=get_menu_item(db,line.item_id)
    except NotFound: raise NotFound(f'Item {line.item_id} not found') from None
    if not item.available: raise Unavailable(f'{item.name} is out of stock')
    total+=item.price*line.quantity
    spice=getattr(line.spice_level,'value',line.spice_level)
    snapshot.append(dict(position=pos,item_id=item.id,name=item.name,quantity=line.quantity,price=item.price,
                         special_instructions=line.special_instructions,spice_level=spice))
  return snapshot,round(total,2)

def create_order(db:Session,customer_name:str,table_number:int,lines:Iterable[LineRequest],
                 payment_method=PaymentMethod.CASH,order_type=OrderType.DINE_IN)->Order:
  snapshot,total=_price_lines(db,list(lines))
  order=None
  for attempt in (1,2):
    order=Order(order_id=new_order_id(),customer_name=customer_name,table_number=table_number,total_amount=total,
                status=OrderStatus.PENDING,payment_method=payment_method,order_type=order_type,created_at=utcnow(),
                items=[OrderItem(**s) for s in snapshot],
                status_history=[OrderStatusChange(status=OrderStatus.PENDING,source='initial')])
    db.add(order)
    try:
      db.commit(); break
    except IntegrityError as e:
      db.rollback()
      if attempt==2: raise Conflict(f'Could not allocate a unique order id: {e.orig}') from e
      log.warning('order id %s already taken, retrying',order.order_id)
  db.refresh(order)
  log.info('order %s created: table %s, %d lines, total %.2f',order.order_id,order.table_number,len(snapshot),total)
  _notify(NEW_ORDER,order)
  return order

def get_order(db:Session,pk:int)->Order:
  order=db.get(Order,pk)
  if not order: raise NotFound('Order not found')
  return order

def update_order_status(db:Session,pk:int,status:OrderStatus,strict:Optional[bool]=None,source:str='admin')->Order:
  strict=config.STRICT_STATUS_TRANSITIONS if strict is None else strict
  status=OrderStatus(status)
  order=get_order(db,pk)
  current=OrderStatus(order.status)
  if strict and not can_transition(current,status):
    raise InvalidTransition(f'Cannot change order status from {current.value} to {status.value}')
  order.status=status
  now=utcnow()
  if status==OrderStatus.ACCEPTED and order.accepted_at is None: order.accepted_at=now
  elif status==OrderStatus.SERVED and order.completed_at is None: order.completed_at=now
  if status!=current: order.status_history.append(OrderStatusChange(status=status,source=source,created_at=now))
  db.commit(); db.refresh(order)
  log.info('order %s: %s -> %s',order.order_id,current.value,status.value)
  _notify(ORDER_UPDATED,order)
  return order

def list_orders(db:Session,today:bool=False,limit:Optional[int]=None):
  q=db.query(Order).options(selectinload(Order.items),selectinload(Order.status_history))
  if today:
    start,end=today_bounds()
    q=q.filter(Order.created_at>=start,Order.created_at<end)
  return q.order_by(Order.created_at.desc(),Order.id.desc()).limit(limit or config.ORDER_LIST_LIMIT).all()

def compute_stats(db:Session)->dict:
  start,end=today_bounds()
  in_today=(Order.created_at>=start,Order.created_at<end)
  today_count=db.query(func.count(Order.id)).filter(*in_today).scalar() or 0
  pending=db.query(func.count(Order.id)).filter(*in_today,Order.status==OrderStatus.PENDING).scalar() or 0
  revenue=db.query(func.sum(Order.total_amount)).filter(*in_today,Order.status!=OrderStatus.CANCELLED).scalar() or 0
  return {'total_orders':today_count,'pending_orders':pending,'today_orders':today_count,'total_revenue':round(float(revenue),2)}

def compute_hourly_chart(db:Session)->dict:
  start,end=today_bounds()
  rows=(db.query(Order.created_at,Order.total_amount)
        .filter(Order.created_at>=start,Order.created_at<end,Order.status!=OrderStatus.CANCELLED).all())
  orders=[0]*24; revenue=[0.0]*24
  for created_at,amount in rows:
    h=as_local(created_at).hour
    orders[h]+=1; revenue[h]+=amount
  return {'labels':[f'{h:02d}:00' for h in range(24)],'orders':orders,'revenue':[round(r,2) for r in revenue]}
