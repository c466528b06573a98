import logging,os,smtplib,ssl
from email.message import EmailMessage
from jinja2 import Environment, FileSystemLoader, select_autoescape
from . import config
log=logging.getLogger(__name__)
env=Environment(loader=FileSystemLoader(os.path.join(os.path.dirname(__file__),'templates')),autoescape=select_autoescape(['html','xml']))
def render(name,**ctx): return env.get_template(name).render(**ctx)
def send_mail(subject,to,html,text=None,reply_to=None):
  if not config.SMTP_HOST or not to:
    log.info('smtp not configured, skipping mail %r to %s',subject,to or '-')
    return False
  msg=EmailMessage(); msg['Subject']=subject; msg['From']=config.SMTP_FROM; msg['To']=to
  if reply_to: msg['Reply-To']=reply_to
  msg.set_content(text or 'This message requires an HTML capable mail client.')
  msg.add_alternative(html,subtype='html')
  with smtplib.SMTP(config.SMTP_HOST,config.SMTP_PORT,timeout=10) as s:
    s.ehlo()
    if config.SMTP_STARTTLS: s.starttls(context=ssl.create_default_context()); s.ehlo()
    if config.SMTP_USER and config.SMTP_PASS: s.login(config.SMTP_USER,config.SMTP_PASS)
    s.send_message(msg)
  log.info('sent mail %r to %s',subject,to)
  return True

def notify_contact_message(message):
  """Mail the admin about a contact form submission. Never raises."""
  try:
    ctx={'m':message}
    send_mail('New Contact Form Submission',config.ADMIN_EMAIL,render('contact_admin.html',**ctx),render('contact_admin.txt',**ctx),reply_to=message.email)
  except Exception:
    log.exception('contact notification failed (message %s still saved)',message.id)

def send_password_reset(user,token):
  url=f'{config.FRONTEND_URL}/reset-password/{token}'
  ctx={'user':user,'reset_url':url,'ttl':config.RESET_TOKEN_TTL_MIN}
  return send_mail('Password Reset Request',user.email,render('password_reset.html',**ctx),render('password_reset.txt',**ctx))
