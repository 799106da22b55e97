"""
Conversation continuity.

The backend links calls through an opaque response id. The gateway keeps the
latest one per conversation so the next message can pass it back as
`previous_response_id`. Last writer wins; nothing expires on its own.
"""
import logging
from typing import Dict, List, Optional

from chat_gateway import storage
from chat_gateway.models import OrchestrationResult

logger = logging.getLogger(__name__)


class ContinuityTracker:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._tokens: Dict[str, str] = {}
        if path:
            self._tokens = dict(storage.get_response_ids(path))
            logger.info("loaded %d continuity tokens from %s", len(self._tokens), path)

    def get(self, conversation_id: Optional[str]) -> Optional[str]:
        if not conversation_id:
            return None
        return self._tokens.get(conversation_id)

    def record(self, conversation_id: Optional[str], result: OrchestrationResult) -> Optional[str]:
        """Store the result's token for `conversation_id`. Results without a token leave the entry alone."""
        if not conversation_id or not result.continuity_token:
            return self.get(conversation_id)
        self._tokens[conversation_id] = result.continuity_token
        self._flush()
        return result.continuity_token

    def forget(self, conversation_id: str) -> bool:
        existed = self._tokens.pop(conversation_id, None) is not None
        if existed:
            self._flush()
        return existed

    def conversations(self) -> List[str]:
        return list(self._tokens)

    def _flush(self):
        if self.path:
            storage.set_response_ids(self.path, self._tokens)
