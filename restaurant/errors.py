import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

log=logging.getLogger(__name__)

class ServiceError(Exception):
  status_code=500
  def __init__(self,message:str):
    super().__init__(message); self.message=message
class NotFound(ServiceError): status_code=404
class Unavailable(ServiceError): status_code=400
class ValidationError(ServiceError): status_code=400
class InvalidTransition(ValidationError): pass
class Conflict(ServiceError): status_code=500
class AuthError(ServiceError): status_code=401
class Forbidden(ServiceError): status_code=403

def _field(loc):
  # drop the 'body'/'query' prefix FastAPI puts in front of the field path
  parts=[str(p) for p in loc[1:]] if len(loc)>1 else [str(p) for p in loc]
  return '.'.join(parts)

async def service_error_handler(request:Request,exc:ServiceError):
  return JSONResponse({'error':exc.message},status_code=exc.status_code)

async def http_error_handler(request:Request,exc:StarletteHTTPException):
  return JSONResponse({'error':exc.detail},status_code=exc.status_code,headers=getattr(exc,'headers',None))

async def validation_error_handler(request:Request,exc:RequestValidationError):
  fields=[{'field':_field(e.get('loc',())),'message':e.get('msg','invalid')} for e in exc.errors()]
  summary='; '.join(f"{f['field']}: {f['message']}" for f in fields) or 'Invalid request'
  return JSONResponse({'error':f'Validation error: {summary}','fields':fields},status_code=400)

async def unhandled_error_handler(request:Request,exc:Exception):
  log.exception('unhandled error on %s %s',request.method,request.url.path)
  return JSONResponse({'error':str(exc) or 'Something went wrong!'},status_code=500)

def install(app):
  app.add_exception_handler(ServiceError,service_error_handler)
  app.add_exception_handler(StarletteHTTPException,http_error_handler)
  app.add_exception_handler(RequestValidationError,validation_error_handler)
  app.add_exception_handler(Exception,unhandled_error_handler)
