import logging
import threading
from typing import Optional

import httpx

PING_INTERVAL_SECONDS = 5 * 60.0
PING_PATH = "hubot/ping"


def normalize_url(url: str) -> str:
	return url.rstrip("/") + "/"


class KeepAlive:
	"""
	Periodically POSTs to ``<url>/hubot/ping`` so idle-timeout hosting
	(Heroku and friends) does not put the process to sleep.

	Pings are fire-and-forget: each one runs on its own daemon thread, the
	result is only logged and a failure never stops the schedule.
	"""

	def __init__(
		self,
		url: str,
		logger: Optional[logging.Logger] = None,
		client: Optional[httpx.Client] = None,
		interval: float = PING_INTERVAL_SECONDS,
	) -> None:
		self.target = normalize_url(url) + PING_PATH
		self.interval = interval
		self._logger = logger or logging.getLogger(__name__)
		self._owns_client = client is None
		self._client = client if client is not None else httpx.Client(timeout=None)
		self._stop = threading.Event()
		self._lock = threading.Lock()
		self._thread: Optional[threading.Thread] = None

	@property
	def running(self) -> bool:
		thread = self._thread
		return thread is not None and thread.is_alive()

	def ping(self) -> None:
		try:
			self._client.post(self.target)
		except Exception as exc:
			self._logger.debug("Keep alive ping to %s failed: %s", self.target, exc)
		self._logger.info("keep alive ping!")

	def fire(self) -> threading.Thread:
		thread = threading.Thread(target=self.ping, name="keepalive-ping", daemon=True)
		thread.start()
		return thread

	def start(self) -> None:
		with self._lock:
			if self.running:
				return
			self._stop.clear()
			self._thread = threading.Thread(target=self._run, name="keepalive", daemon=True)
			self._thread.start()
		self._logger.debug("Keep alive pings every %ss to %s", self.interval, self.target)

	def stop(self, timeout: Optional[float] = None) -> None:
		self._stop.set()
		with self._lock:
			thread = self._thread
			self._thread = None
		if thread is not None:
			thread.join(timeout)
		if self._owns_client:
			self._client.close()

	def _run(self) -> None:
		while not self._stop.wait(self.interval):
			self.fire()
