"""
Ping Scheduler Module

Background timer that periodically submits the ecosystem timer's `ping`
transaction. Its configuration is an immutable snapshot; reconfiguring
replaces the whole snapshot under a lock and re-arms the timer.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PingConfig:
    """Where to ping, with which key, and how often (0 = disabled)"""
    timer_contract_adr: str
    signing_private_key: str
    interval_sec: int = 0

    @property
    def enabled(self) -> bool:
        return self.interval_sec > 0

    def to_dict(self) -> dict:
        # Never expose the key
        return {'timer_contract_adr': self.timer_contract_adr, 'interval_sec': self.interval_sec}


class PingScheduler:
    """
    Repeating ping timer.

    submit_ping receives the active PingConfig and returns a transaction hash.
    A failed ping is logged and the timer keeps running.
    """

    def __init__(self, submit_ping: Callable[[PingConfig], str]):
        self.submit_ping = submit_ping
        self._lock = threading.Lock()
        self._config: Optional[PingConfig] = None
        self._timer: Optional[threading.Timer] = None
        self._generation = 0
        self.stats = {'pings': 0, 'failures': 0}

    @property
    def config(self) -> Optional[PingConfig]:
        with self._lock:
            return self._config

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._timer is not None

    def configure(self, config: Optional[PingConfig]) -> None:
        """Replace the active configuration; None or a zero interval stops the timer."""
        with self._lock:
            self._cancel_locked()
            self._generation += 1
            self._config = config if config and config.enabled else None
            if self._config:
                self._arm_locked(self._generation)
                logger.info(f"Ping scheduled every {self._config.interval_sec}s for {self._config.timer_contract_adr}")
            else:
                logger.info("Ping scheduling disabled")

    def stop(self) -> None:
        self.configure(None)

    def run_once(self) -> Optional[str]:
        """Ping with the current configuration, outside the timer."""
        config = self.config
        if config is None:
            return None
        return self._ping(config)

    # ------------------------------------------------------------------

    def _cancel_locked(self) -> None:
        if self._timer:
            self._timer.cancel()
            self._timer = None

    def _arm_locked(self, generation: int) -> None:
        self._timer = threading.Timer(self._config.interval_sec, self._tick, args=(generation,))
        self._timer.daemon = True
        self._timer.start()

    def _tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._config is None:
                return
            config = self._config

        self._ping(config)

        with self._lock:
            if generation == self._generation and self._config is not None:
                self._arm_locked(generation)

    def _ping(self, config: PingConfig) -> Optional[str]:
        try:
            tx_hash = self.submit_ping(config)
        except Exception as e:
            self.stats['failures'] += 1
            logger.error(f"Scheduled ping to {config.timer_contract_adr} failed: {e}")
            return None
        self.stats['pings'] += 1
        logger.info(f"Ping submitted to {config.timer_contract_adr}: {tx_hash}")
        return tx_hash
