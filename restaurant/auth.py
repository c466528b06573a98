from datetime import datetime,timedelta,timezone
from typing import Optional
import hashlib,secrets
from fastapi import Depends,Header
from jose import jwt,JWTError
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from .config import JWT_SECRET,JWT_ALG,JWT_EXPIRES_MIN
from .database import get_db
from .errors import AuthError,Forbidden
from .models import User,Role
pwd_ctx=CryptContext(schemes=['bcrypt'],deprecated='auto')
def hash_password(pw:str)->str: return pwd_ctx.hash(pw)
def verify_password(pw:str,hashed:str)->bool: return pwd_ctx.verify(pw,hashed)
def create_token(sub:str,extra:Optional[dict]=None)->str:
  now=datetime.now(timezone.utc)
  payload={'sub':sub,'iat':int(now.timestamp()),'exp':int((now+timedelta(minutes=JWT_EXPIRES_MIN)).timestamp())}
  if extra: payload.update(extra)
  return jwt.encode(payload,JWT_SECRET,algorithm=JWT_ALG)
def decode_token(token:str)->dict:
  try: return jwt.decode(token,JWT_SECRET,algorithms=[JWT_ALG])
  except JWTError as e: raise ValueError('invalid token') from e
def token_for(user:User)->str: return create_token(user.email,{'role':Role(user.role).value})

def new_reset_token()->tuple[str,str]:
  """Return (token mailed to the user, sha256 digest kept in the database)."""
  token=secrets.token_hex(32)
  return token,hash_reset_token(token)
def hash_reset_token(token:str)->str: return hashlib.sha256(token.encode()).hexdigest()

def user_from_token(db:Session,token:Optional[str])->Optional[User]:
  if not token: return None
  try: email=decode_token(token).get('sub')
  except ValueError: return None
  if not email: return None
  user=db.query(User).filter(User.email==email).first()
  if not user or not user.is_active: return None
  return user

def _bearer(authorization:Optional[str])->Optional[str]:
  if not authorization or ' ' not in authorization: return None
  scheme,token=authorization.split(' ',1)
  return token.strip() if scheme.lower()=='bearer' else None

def get_current_user(authorization:Optional[str]=Header(None),db:Session=Depends(get_db)):
  return user_from_token(db,_bearer(authorization))
def require_user(user:Optional[User]=Depends(get_current_user)):
  if not user: raise AuthError('Please authenticate')
  return user
def require_admin(user:User=Depends(require_user)):
  # role comes from the database row, never from the token claim
  if user.role!=Role.ADMIN: raise Forbidden('Admin access required')
  return user
