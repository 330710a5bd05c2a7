"""
Redis Store - Item bank, response logs and student profiles.

Key Structure:
    irt:items                      -> Hash (item_id -> JSON ItemParameters)
    irt:learners                   -> Set of learner IDs with responses
    irt:responses:{learner_id}     -> List (JSON of each response, oldest first)
    irt:details:{learner_id}       -> Hash (item_id -> JSON ProblemDetails)
    irt:profile:{learner_id}       -> String (JSON StudentProfile)

The engine never touches this module; it only receives the snapshots read
from here.
"""

import json
import logging
import os
from typing import Dict, List, Optional

import redis
from dotenv import load_dotenv

from core.models import ItemBank, ItemParameters, ProblemDetails, ResponseRecord, StudentProfile

# Load environment variables from .env
load_dotenv()

logger = logging.getLogger(__name__)


class RedisStore:
    def __init__(self, client: Optional[redis.Redis] = None, response_log_limit: Optional[int] = None):
        """
        Connect to Redis using environment variables.

        Args:
            client: Pre-built client (anything speaking the redis-py API)
            response_log_limit: Newest responses kept per learner
        """
        self.client = client if client is not None else redis.Redis(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", 6379)),
            password=os.getenv("REDIS_PASSWORD", None),
            decode_responses=True  # Return strings instead of bytes
        )
        self.response_log_limit = response_log_limit or int(os.getenv("IRT_RESPONSE_LOG_LIMIT", 500))

    # ==================== Key Builders ====================

    ITEMS_KEY = "irt:items"
    LEARNERS_KEY = "irt:learners"

    def _responses_key(self, learner_id: str) -> str:
        return f"irt:responses:{learner_id}"

    def _details_key(self, learner_id: str) -> str:
        return f"irt:details:{learner_id}"

    def _profile_key(self, learner_id: str) -> str:
        return f"irt:profile:{learner_id}"

    # ==================== Item Bank ====================

    def get_item(self, item_id: str) -> Optional[ItemParameters]:
        raw = self.client.hget(self.ITEMS_KEY, item_id)
        return ItemParameters.from_dict(json.loads(raw)) if raw else None

    def save_item(self, item: ItemParameters):
        self.client.hset(self.ITEMS_KEY, item.item_id, json.dumps(item.to_dict()))

    def save_items(self, items: List[ItemParameters]):
        if not items:
            return
        mapping = {item.item_id: json.dumps(item.to_dict()) for item in items}
        self.client.hset(self.ITEMS_KEY, mapping=mapping)

    def get_item_bank(self) -> ItemBank:
        """Full item bank, keyed by item ID."""
        raw = self.client.hgetall(self.ITEMS_KEY)
        return {item_id: ItemParameters.from_dict(json.loads(v)) for item_id, v in raw.items()}

    # ==================== Response Log ====================

    def append_response(self, response: ResponseRecord):
        """
        Append a response, trimming the log to the newest entries.
        """
        key = self._responses_key(response.learner_id)
        self.client.rpush(key, json.dumps(response.to_dict()))
        self.client.sadd(self.LEARNERS_KEY, response.learner_id)

        length = self.client.llen(key)
        if length > self.response_log_limit:
            self.client.ltrim(key, -self.response_log_limit, -1)
            logger.info("Trimmed response log for %s to %d entries", response.learner_id,
                        self.response_log_limit)

    def get_responses(self, learner_id: str) -> List[ResponseRecord]:
        raw = self.client.lrange(self._responses_key(learner_id), 0, -1)
        return [ResponseRecord.from_dict(json.loads(r)) for r in raw]

    def get_learner_ids(self) -> List[str]:
        return sorted(self.client.smembers(self.LEARNERS_KEY))

    def get_all_responses(self) -> Dict[str, List[ResponseRecord]]:
        """Every learner's response log, for batch calibration."""
        return {learner_id: self.get_responses(learner_id) for learner_id in self.get_learner_ids()}

    # ==================== Problem Details ====================

    def save_problem_details(self, learner_id: str, item_id: str, details: ProblemDetails):
        self.client.hset(self._details_key(learner_id), item_id, json.dumps(details.to_dict()))

    def get_problem_details(self, learner_id: str) -> Dict[str, ProblemDetails]:
        raw = self.client.hgetall(self._details_key(learner_id))
        return {item_id: ProblemDetails.from_dict(json.loads(v)) for item_id, v in raw.items()}

    # ==================== Student Profile ====================

    def get_profile(self, learner_id: str) -> Optional[StudentProfile]:
        raw = self.client.get(self._profile_key(learner_id))
        return StudentProfile.from_dict(json.loads(raw)) if raw else None

    def save_profile(self, profile: StudentProfile):
        self.client.set(self._profile_key(profile.learner_id), json.dumps(profile.to_dict()))

    # ==================== Cleanup ====================

    def delete_learner(self, learner_id: str):
        """Delete all data for a learner (for testing/cleanup)."""
        self.client.delete(
            self._responses_key(learner_id),
            self._details_key(learner_id),
            self._profile_key(learner_id)
        )
        self.client.srem(self.LEARNERS_KEY, learner_id)

    def reset(self):
        """Delete the item bank and every learner's data."""
        for learner_id in self.get_learner_ids():
            self.delete_learner(learner_id)
        self.client.delete(self.ITEMS_KEY, self.LEARNERS_KEY)
