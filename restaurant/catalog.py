from sqlalchemy import func,case
from sqlalchemy.orm import Session
from .errors import NotFound
from .models import MenuItem

def get_menu_item(db:Session,item_id:int)->MenuItem:
  item=db.get(MenuItem,item_id)
  if not item: raise NotFound('Menu item not found')
  return item

def list_menu_items(db:Session,category=None,available:bool|None=None):
  q=db.query(MenuItem)
  if category: q=q.filter(MenuItem.category==category)
  if available is not None: q=q.filter(MenuItem.available==available)
  return q.order_by(MenuItem.created_at.desc(),MenuItem.id.desc()).all()

def create_menu_item(db:Session,data:dict)->MenuItem:
  item=MenuItem(**data); db.add(item); db.commit(); db.refresh(item)
  return item

def update_menu_item(db:Session,item_id:int,changes:dict)->MenuItem:
  item=get_menu_item(db,item_id)
  for k,v in changes.items(): setattr(item,k,v)
  db.commit(); db.refresh(item)
  return item

def set_availability(db:Session,item_id:int,available:bool)->MenuItem:
  return update_menu_item(db,item_id,{'available':available})

def delete_menu_item(db:Session,item_id:int):
  # placed orders keep their own copies of name and price
  db.delete(get_menu_item(db,item_id)); db.commit()

def categories(db:Session):
  return sorted(c.value for (c,) in db.query(MenuItem.category).distinct())

def menu_stats(db:Session)->dict:
  total=db.query(func.count(MenuItem.id)).scalar() or 0
  available=db.query(func.count(MenuItem.id)).filter(MenuItem.available.is_(True)).scalar() or 0
  rows=(db.query(MenuItem.category,func.count(MenuItem.id),func.sum(case((MenuItem.available.is_(True),1),else_=0)))
        .group_by(MenuItem.category).order_by(MenuItem.category).all())
  return {
    'total_items':total,'available_items':available,'out_of_stock_items':total-available,
    'category_stats':[{'category':c,'count':n,'available':int(a or 0)} for c,n,a in rows],
  }
