"""
Task authentication tokens and integrity hashes.

Tokens have the form ``<uuid4>-<device_id>`` and expire after a fixed
virtual-time window. The integrity hash is a SHA-256 digest over the
fields that drive placement and execution; any change to those fields
after sealing makes verification fail.
"""
import logging
import uuid
from typing import Dict, Optional

import numpy as np

from models.data_structures import Task

logger = logging.getLogger(__name__)


class SecurityManager:
    """Issues device tokens and seals tasks"""

    def __init__(self, rng: Optional[np.random.Generator] = None,
                 token_ttl_ms: float = 3_600_000.0):
        self.rng = rng
        self.token_ttl_ms = token_ttl_ms
        self._tokens: Dict[str, Dict] = {}

    def _new_uuid(self) -> str:
        if self.rng is None:
            return str(uuid.uuid4())
        return str(uuid.UUID(bytes=self.rng.bytes(16), version=4))

    def generate_token(self, device_id: int, issued_at: float = 0.0) -> str:
        token = f"{self._new_uuid()}-{device_id}"
        self._tokens[token] = {'device_id': device_id, 'issued_at': issued_at}
        return token

    def validate_token(self, token: str, current_time: Optional[float] = None) -> bool:
        entry = self._tokens.get(token)
        if entry is None:
            return False
        if current_time is not None and current_time - entry['issued_at'] > self.token_ttl_ms:
            self.revoke_token(token)
            logger.debug("Token for device %s expired", entry['device_id'])
            return False
        return True

    def device_for_token(self, token: str) -> Optional[int]:
        entry = self._tokens.get(token)
        return entry['device_id'] if entry else None

    def revoke_token(self, token: str):
        self._tokens.pop(token, None)

    @property
    def active_tokens(self) -> int:
        return len(self._tokens)

    def seal_task(self, task: Task) -> str:
        task.integrity_hash = task.compute_integrity_hash()
        return task.integrity_hash

    def verify_integrity(self, task: Task) -> bool:
        return task.verify_integrity()
