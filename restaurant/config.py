import os
from dotenv import load_dotenv

load_dotenv()

def _flag(name,default):
  return os.getenv(name,default).strip().lower() in ('1','true','yes','on')

DATABASE_URL=os.getenv('DATABASE_URL','postgresql+psycopg://restaurant:restaurant@db:5432/restaurant')
JWT_SECRET=os.getenv('JWT_SECRET','change_me')
JWT_ALG=os.getenv('JWT_ALG','HS256')
JWT_EXPIRES_MIN=int(os.getenv('JWT_EXPIRES_MIN','10080'))
RESET_TOKEN_TTL_MIN=int(os.getenv('RESET_TOKEN_TTL_MIN','60'))
FRONTEND_URL=os.getenv('FRONTEND_URL','http://localhost:3000').rstrip('/')

APP_TIMEZONE=os.getenv('APP_TIMEZONE','UTC')
STRICT_STATUS_TRANSITIONS=_flag('STRICT_STATUS_TRANSITIONS','1')
ORDER_LIST_LIMIT=int(os.getenv('ORDER_LIST_LIMIT','100'))
EVENT_QUEUE_SIZE=int(os.getenv('EVENT_QUEUE_SIZE','100'))
CORS_ORIGINS=[o.strip() for o in os.getenv('CORS_ORIGINS','*').split(',') if o.strip()]

SMTP_HOST=os.getenv('SMTP_HOST',''); SMTP_PORT=int(os.getenv('SMTP_PORT','587'))
SMTP_USER=os.getenv('SMTP_USER',''); SMTP_PASS=os.getenv('SMTP_PASS','')
SMTP_FROM=os.getenv('SMTP_FROM','no-reply@example.com')
SMTP_STARTTLS=_flag('SMTP_STARTTLS','1')
ADMIN_EMAIL=os.getenv('ADMIN_EMAIL','')

PORT=int(os.getenv('PORT','8000'))
LOG_LEVEL=os.getenv('LOG_LEVEL','INFO').upper()

LOGGING={
  'version':1,
  'disable_existing_loggers':False,
  'formatters':{'simple':{'format':'[%(levelname)s] %(asctime)s %(name)s: %(message)s'}},
  'handlers':{'console':{'class':'logging.StreamHandler','formatter':'simple'}},
  'loggers':{
    'restaurant':{'handlers':['console'],'level':LOG_LEVEL,'propagate':False},
    'uvicorn':{'handlers':['console'],'level':'WARNING','propagate':False},
  },
}
