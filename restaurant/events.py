import asyncio,logging
from typing import Optional
from .config import EVENT_QUEUE_SIZE

log=logging.getLogger(__name__)

NEW_ORDER='new-order'
ORDER_UPDATED='order-updated'

# no replay: a subscriber only sees events published while it is subscribed
class OrderEvents:
  def __init__(self,queue_size:int=EVENT_QUEUE_SIZE):
    self.queue_size=queue_size
    self._subscribers:set[asyncio.Queue]=set()
    self._outbox:Optional[asyncio.Queue]=None
    self._loop:Optional[asyncio.AbstractEventLoop]=None
    self._task:Optional[asyncio.Task]=None

  @property
  def running(self)->bool:
    return self._task is not None and not self._task.done()

  def start(self):
    """Start the dispatcher on the running loop. Safe to call repeatedly."""
    loop=asyncio.get_running_loop()
    if self.running and self._loop is loop: return
    self._loop=loop; self._outbox=asyncio.Queue()
    self._subscribers.clear()
    self._task=loop.create_task(self._dispatch(),name='order-events')

  async def stop(self):
    task,self._task=self._task,None
    if task and not task.done():
      task.cancel()
      try: await task
      except asyncio.CancelledError: pass
    self._subscribers.clear(); self._loop=None; self._outbox=None

  def subscribe(self)->asyncio.Queue:
    self.start()
    q=asyncio.Queue(maxsize=self.queue_size)
    self._subscribers.add(q)
    log.info('order events subscriber added (%d connected)',len(self._subscribers))
    return q

  def unsubscribe(self,q:asyncio.Queue):
    if q in self._subscribers:
      self._subscribers.discard(q)
      log.info('order events subscriber removed (%d connected)',len(self._subscribers))

  @property
  def subscriber_count(self)->int: return len(self._subscribers)

  def publish(self,event:str,data:dict)->bool:
    """Queue an event for delivery. Never raises; returns False if it was dropped."""
    loop,outbox=self._loop,self._outbox
    if loop is None or outbox is None or loop.is_closed():
      log.debug('no dispatcher running, dropping %s',event)
      return False
    try:
      loop.call_soon_threadsafe(outbox.put_nowait,{'event':event,'data':data})
      return True
    except Exception:
      log.exception('failed to enqueue %s',event)
      return False

  async def _dispatch(self):
    while True:
      msg=await self._outbox.get()
      for q in list(self._subscribers):
        try: q.put_nowait(msg)
        except asyncio.QueueFull:
          log.warning('subscriber buffer full, dropping %s',msg['event'])

hub=OrderEvents()
