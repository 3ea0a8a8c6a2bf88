"""
Background worker that relays placed orders to iiko.
Orders are queued after they are persisted; workers push them to iiko as deliveries.
A failed relay is logged and recorded, never retried and never reported to the client.
"""
import asyncio
import time
from collections import deque
from typing import Optional

import structlog
from pydantic import BaseModel

from app.integrations.iiko.api_client import IikoAPIClient
from app.models.database import OrderRecord
from app.models.iiko import CreateDeliveryRequest, DeliveryCustomer, DeliveryItem, DeliveryOrder
from app.services.document_store import JsonDocumentStore
from app.services.session_validator import SessionUser

logger = structlog.get_logger()

SENT_STATUS = "sent_to_pos"
FAILURE_LOG_SIZE = 200


class RelayJob(BaseModel):
    order: OrderRecord
    user: Optional[SessionUser] = None


class RelayFailure(BaseModel):
    """Entry of the relay failure log."""
    orderId: str
    orderNumber: str
    reason: str
    at: float


def build_delivery_request(order: OrderRecord, user: Optional[SessionUser]) -> CreateDeliveryRequest:
    """Shape an order record and its customer as an iiko delivery."""
    name = user.full_name if user else ""
    return CreateDeliveryRequest(
        order=DeliveryOrder(
            phone=(user.phone if user else None) or "",
            customer=DeliveryCustomer(
                name=name or "Guest",
                id=str(user.id) if user and user.id is not None else None,
            ),
            items=[DeliveryItem(productId=item.id, amount=item.qty) for item in order.items],
        )
    )


class RelayWorker:
    """Worker pool that processes the relay queue."""

    def __init__(
        self,
        iiko_client: IikoAPIClient,
        store: JsonDocumentStore,
        queue_size: int = 100,
        worker_count: int = 2,
    ):
        """Initialize relay worker."""
        self.iiko_client = iiko_client
        self.store = store
        self.queue: asyncio.Queue[RelayJob] = asyncio.Queue(maxsize=queue_size)
        self.worker_count = worker_count
        self.failures: deque[RelayFailure] = deque(maxlen=FAILURE_LOG_SIZE)
        self.running = False
        self._tasks: list[asyncio.Task] = []

    async def start(self):
        """Start the worker tasks."""
        if self.running:
            return
        self.running = True
        self._tasks = [
            asyncio.create_task(self._run(), name=f"relay-worker-{i}")
            for i in range(self.worker_count)
        ]
        logger.info("Relay worker started", workers=self.worker_count)

    async def stop(self, timeout: float = 10.0):
        """Let queued jobs finish (up to timeout), then stop the workers."""
        if not self.running:
            return
        try:
            await asyncio.wait_for(self.queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Relay queue not drained before shutdown", pending=self.queue.qsize())
        self.running = False
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Relay worker stopped")

    def submit(self, order: OrderRecord, user: Optional[SessionUser]) -> bool:
        """
        Queue an order for relay without waiting for it.

        Returns:
            True if queued, False if the queue was full and the job was dropped
        """
        try:
            self.queue.put_nowait(RelayJob(order=order, user=user))
            return True
        except asyncio.QueueFull:
            logger.error("Relay queue full, order not sent to iiko", order_number=order.number)
            self._record_failure(order, "queue_full")
            return False

    async def _run(self):
        while self.running:
            job = await self.queue.get()
            try:
                await self.process(job)
            except Exception as e:
                logger.error("Error in relay worker loop", error=str(e))
            finally:
                self.queue.task_done()

    async def process(self, job: RelayJob) -> bool:
        """
        Send one order to iiko.

        Returns:
            True if iiko accepted the delivery
        """
        order = job.order
        token = await self.iiko_client.get_token()
        if not token:
            logger.info("No iiko token, skipping order send", order_number=order.number)
            self._record_failure(order, "no_token")
            return False

        try:
            response = await self.iiko_client.create_delivery(
                token, build_delivery_request(order, job.user)
            )
        except Exception as e:
            logger.error("iiko order send error", order_number=order.number, error=str(e))
            self._record_failure(order, str(e))
            return False

        logger.info("iiko order sent", order_number=order.number, iiko_id=response.id)
        await self._mark_sent(order.id)
        return True

    async def _mark_sent(self, order_id: str):
        def mutate(orders: list[OrderRecord]) -> None:
            for record in orders:
                if record.id == order_id:
                    record.posSent = True
                    record.status = SENT_STATUS
                    return

        try:
            await self.store.with_orders(mutate)
        except Exception as e:
            logger.warning("Could not mark order as sent", order_id=order_id, error=str(e))

    def _record_failure(self, order: OrderRecord, reason: str):
        self.failures.append(
            RelayFailure(orderId=order.id, orderNumber=order.number, reason=reason, at=time.time())
        )
