from fastapi import FastAPI,Depends,HTTPException,WebSocket,WebSocketDisconnect,BackgroundTasks,status
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from contextlib import asynccontextmanager
from typing import List,Optional
from datetime import timedelta
import asyncio,logging,logging.config,re
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from . import catalog,config,errors,orders as order_service
from .database import SessionLocal,engine,Base,get_db
from .models import Chef,ContactMessage,Role,User,Category
from .auth import hash_password,verify_password,token_for,new_reset_token,hash_reset_token,user_from_token,require_user,require_admin
from .emailer import notify_contact_message,send_password_reset
from .events import hub
from .utils import utcnow,as_local
from .schemas import (RegisterIn,LoginIn,ChangePasswordIn,ForgotPasswordIn,ResetPasswordIn,UserOut,TokenOut,MessageOut,
  MenuItemIn,MenuItemUpdate,MenuItemOut,AvailabilityIn,MenuStatsOut,ChefIn,ChefUpdate,ChefOut,ContactIn,ContactOut,
  ContactStatsOut,OrderIn,StatusIn,OrderOut,OrderStatsOut,HourlyChartOut)
log=logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app:FastAPI):
  logging.config.dictConfig(config.LOGGING)
  Base.metadata.create_all(bind=engine)
  hub.start()
  yield
  await hub.stop()

app=FastAPI(title='Happy Family Restaurant API',lifespan=lifespan)
app.add_middleware(CORSMiddleware,allow_origins=config.CORS_ORIGINS,allow_credentials=True,allow_methods=['*'],allow_headers=['*'])
errors.install(app)

def _get_or_404(db:Session,model,pk:int,message:str):
  obj=db.get(model,pk)
  if not obj: raise errors.NotFound(message)
  return obj

@app.get('/')
def root(): return {'ok':True}
@app.get('/api/test')
def health(): return {'message':'Server is running!'}

# --- auth ---
@app.post('/api/auth/register',response_model=TokenOut,status_code=201)
def register(body:RegisterIn,db:Session=Depends(get_db)):
  if db.query(User).filter(User.role==Role.ADMIN).first(): raise HTTPException(400,'Admin already registered')
  if db.query(User).filter(User.email==body.email.lower()).first(): raise HTTPException(400,'Email already exists')
  u=User(name=body.name,email=body.email.lower(),password_hash=hash_password(body.password),role=Role.ADMIN)
  db.add(u)
  try: db.commit()
  except IntegrityError: db.rollback(); raise HTTPException(400,'Email already exists')
  return {'message':'Admin registered successfully','token':token_for(u),'user':u}
@app.post('/api/auth/login',response_model=TokenOut)
def login(body:LoginIn,db:Session=Depends(get_db)):
  u=db.query(User).filter(User.email==body.email.lower()).first()
  if not u or not verify_password(body.password,u.password_hash): raise HTTPException(401,'Invalid credentials')
  if not u.is_active: raise HTTPException(401,'Account is disabled')
  u.last_login=utcnow(); db.commit()
  return {'message':'Login successful','token':token_for(u),'user':u}
@app.get('/api/auth/me')
def me(user:User=Depends(require_user)): return {'user':UserOut.model_validate(user).model_dump(by_alias=True)}
@app.put('/api/auth/change-password',response_model=MessageOut)
def change_password(body:ChangePasswordIn,db:Session=Depends(get_db),user:User=Depends(require_user)):
  if not verify_password(body.current_password,user.password_hash): raise HTTPException(400,'Current password is incorrect')
  user.password_hash=hash_password(body.new_password); db.commit()
  return {'message':'Password changed successfully'}
@app.post('/api/auth/forgot-password',response_model=MessageOut)
def forgot_password(body:ForgotPasswordIn,db:Session=Depends(get_db)):
  u=db.query(User).filter(User.email==body.email.lower()).first()
  if not u: raise HTTPException(404,'User not found')
  token,digest=new_reset_token()
  u.reset_token_hash=digest; u.reset_expires=utcnow()+timedelta(minutes=config.RESET_TOKEN_TTL_MIN); db.commit()
  send_password_reset(u,token)
  return {'message':'Password reset email sent'}
@app.put('/api/auth/reset-password/{token}',response_model=MessageOut)
def reset_password(token:str,body:ResetPasswordIn,db:Session=Depends(get_db)):
  u=db.query(User).filter(User.reset_token_hash==hash_reset_token(token)).first()
  if not u or not u.reset_expires or as_local(u.reset_expires)<=utcnow(): raise HTTPException(400,'Invalid or expired token')
  u.password_hash=hash_password(body.password); u.reset_token_hash=None; u.reset_expires=None; db.commit()
  return {'message':'Password reset successful'}
@app.post('/api/auth/logout',response_model=MessageOut)
def logout(user:User=Depends(require_user)): return {'message':'Logged out successfully'}

# --- menu ---
@app.get('/api/menu',response_model=List[MenuItemOut])
def list_menu(category:Optional[Category]=None,available:Optional[bool]=None,db:Session=Depends(get_db)):
  return catalog.list_menu_items(db,category,available)
@app.get('/api/menu/categories/all',response_model=List[str])
def menu_categories(db:Session=Depends(get_db)): return catalog.categories(db)
@app.get('/api/menu/stats/count',response_model=MenuStatsOut)
def menu_stats(db:Session=Depends(get_db),user:User=Depends(require_user)): return catalog.menu_stats(db)
@app.get('/api/menu/{item_id}',response_model=MenuItemOut)
def get_menu_item(item_id:int,db:Session=Depends(get_db)): return catalog.get_menu_item(db,item_id)
@app.post('/api/menu',response_model=MenuItemOut,status_code=201)
def create_menu_item(body:MenuItemIn,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return catalog.create_menu_item(db,body.model_dump())
@app.put('/api/menu/{item_id}',response_model=MenuItemOut)
def update_menu_item(item_id:int,body:MenuItemUpdate,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return catalog.update_menu_item(db,item_id,body.model_dump(exclude_unset=True,exclude_none=True))
@app.patch('/api/menu/{item_id}/availability',response_model=MenuItemOut)
def menu_availability(item_id:int,body:AvailabilityIn,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return catalog.set_availability(db,item_id,body.available)
@app.delete('/api/menu/{item_id}',response_model=MessageOut)
def delete_menu_item(item_id:int,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  catalog.delete_menu_item(db,item_id); return {'message':'Menu item deleted successfully'}

# --- chefs ---
@app.get('/api/chefs',response_model=List[ChefOut])
def list_chefs(db:Session=Depends(get_db)): return db.query(Chef).order_by(Chef.name).all()
@app.get('/api/chefs/{chef_id}',response_model=ChefOut)
def get_chef(chef_id:int,db:Session=Depends(get_db)): return _get_or_404(db,Chef,chef_id,'Chef not found')
@app.post('/api/chefs',response_model=ChefOut,status_code=201)
def create_chef(body:ChefIn,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  c=Chef(**body.model_dump()); db.add(c); db.commit(); db.refresh(c); return c
@app.put('/api/chefs/{chef_id}',response_model=ChefOut)
def update_chef(chef_id:int,body:ChefUpdate,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  c=_get_or_404(db,Chef,chef_id,'Chef not found')
  for k,v in body.model_dump(exclude_unset=True,exclude_none=True).items(): setattr(c,k,v)
  db.commit(); db.refresh(c); return c
@app.patch('/api/chefs/{chef_id}/availability',response_model=ChefOut)
def chef_availability(chef_id:int,body:AvailabilityIn,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  c=_get_or_404(db,Chef,chef_id,'Chef not found'); c.available=body.available; db.commit(); db.refresh(c); return c
@app.delete('/api/chefs/{chef_id}',response_model=MessageOut)
def delete_chef(chef_id:int,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  db.delete(_get_or_404(db,Chef,chef_id,'Chef not found')); db.commit(); return {'message':'Chef deleted successfully'}

# --- contact ---
EMAIL_RE=re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')
@app.post('/api/contact',response_model=MessageOut,status_code=201)
def submit_contact(body:ContactIn,background:BackgroundTasks,db:Session=Depends(get_db)):
  name,email,message=(body.name or '').strip(),(body.email or '').strip(),(body.message or '').strip()
  if not name or not email or not message: raise HTTPException(400,'Name, email, and message are required fields')
  if not EMAIL_RE.match(email): raise HTTPException(400,'Please provide a valid email address')
  phone=(body.phone or '').strip() or None
  m=ContactMessage(name=name,email=email.lower(),phone=phone,message=message,read=False)
  db.add(m); db.commit(); db.refresh(m)
  if config.ADMIN_EMAIL: background.add_task(notify_contact_message,m)
  return {'message':'Thank you for your message! We will get back to you soon.'}
@app.get('/api/contact',response_model=List[ContactOut])
def list_contact(read:Optional[bool]=None,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  q=db.query(ContactMessage)
  if read is not None: q=q.filter(ContactMessage.read==read)
  return q.order_by(ContactMessage.created_at.desc(),ContactMessage.id.desc()).all()
@app.get('/api/contact/stats',response_model=ContactStatsOut)
def contact_stats(db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  total=db.query(func.count(ContactMessage.id)).scalar() or 0
  unread=db.query(func.count(ContactMessage.id)).filter(ContactMessage.read.is_(False)).scalar() or 0
  return {'total_messages':total,'unread_messages':unread,'read_messages':total-unread}
@app.patch('/api/contact/{message_id}/read',response_model=ContactOut)
def mark_read(message_id:int,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  m=_get_or_404(db,ContactMessage,message_id,'Message not found'); m.read=True; db.commit(); db.refresh(m); return m
@app.delete('/api/contact/{message_id}',response_model=MessageOut)
def delete_contact(message_id:int,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  db.delete(_get_or_404(db,ContactMessage,message_id,'Message not found')); db.commit()
  return {'message':'Message deleted successfully'}

# --- orders ---
@app.post('/api/orders',response_model=OrderOut,status_code=201)
def create_order(order:OrderIn,db:Session=Depends(get_db)):
  lines=[order_service.LineRequest(i.item_id,i.quantity,i.special_instructions,i.spice_level) for i in order.items]
  return order_service.create_order(db,order.customer_name,order.table_number,lines,order.payment_method,order.order_type)
@app.get('/api/orders',response_model=List[OrderOut])
def list_orders(today:bool=False,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return order_service.list_orders(db,today=today)
@app.get('/api/orders/stats',response_model=OrderStatsOut)
def order_stats(db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return order_service.compute_stats(db)
@app.get('/api/orders/stats/chart',response_model=HourlyChartOut)
def order_chart(db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return order_service.compute_hourly_chart(db)
@app.get('/api/orders/{order_pk}',response_model=OrderOut)
def get_order(order_pk:int,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return order_service.get_order(db,order_pk)
@app.put('/api/orders/{order_pk}/status',response_model=OrderOut)
def update_status(order_pk:int,body:StatusIn,db:Session=Depends(get_db),admin:User=Depends(require_admin)):
  return order_service.update_order_status(db,order_pk,body.status,source=f'admin:{admin.email}'[:32])

# --- notification channel ---
async def _forward(ws:WebSocket,q:asyncio.Queue):
  try:
    while True: await ws.send_json(await q.get())
  except asyncio.CancelledError: raise
  except Exception as e: log.info('order events connection dropped: %s',e)
def _ws_user(token):
  db=SessionLocal()
  try: return user_from_token(db,token)
  finally: db.close()
@app.websocket('/ws/orders')
async def ws_orders(ws:WebSocket,token:Optional[str]=None):
  user=await run_in_threadpool(_ws_user,token)
  if not user or user.role!=Role.ADMIN:
    log.warning('rejected order events connection from %s',ws.client.host if ws.client else '?')
    await ws.close(code=status.WS_1008_POLICY_VIOLATION); return
  q=hub.subscribe(); await ws.accept()
  sender=asyncio.create_task(_forward(ws,q))
  try:
    while True: await ws.receive_text()
  except WebSocketDisconnect: pass
  finally:
    sender.cancel(); hub.unsubscribe(q)
    await asyncio.gather(sender,return_exceptions=True)

def run():
  import uvicorn
  uvicorn.run('restaurant.main:app',host='0.0.0.0',port=config.PORT)

if __name__=='__main__':
  run()
