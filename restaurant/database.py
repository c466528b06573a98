from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from .config import DATABASE_URL

engine_kw={}
if DATABASE_URL.startswith('sqlite'):
  engine_kw['connect_args']={'check_same_thread':False}
  # one shared connection, otherwise every session sees its own empty in-memory db
  if DATABASE_URL in ('sqlite://','sqlite:///:memory:'): engine_kw['poolclass']=StaticPool
engine=create_engine(DATABASE_URL,**engine_kw)
SessionLocal=sessionmaker(bind=engine,autoflush=False,autocommit=False,expire_on_commit=False)
Base=declarative_base()

def get_db():
  db=SessionLocal()
  try: yield db
  finally: db.close()
