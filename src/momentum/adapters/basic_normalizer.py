import logging
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from src.momentum.domain.exceptions import MalformedEventError
from src.momentum.domain.vote_event import CandidateUpdate, VoteEvent
from src.momentum.interfaces.vote_event_normalizer import VoteEventNormalizer

logger = logging.getLogger(__name__)

_ENTITY_KEYS = ("entity_id", "candidateId", "choice", "regionId")
_NAME_KEYS = ("display_name", "candidateName", "choiceName", "name")
_RESERVED_UPDATE_KEYS = frozenset(_ENTITY_KEYS + _NAME_KEYS)


class BasicVoteEventNormalizer(VoteEventNormalizer):
    """
    Accepts the payload shapes pushed on the vote/candidate update channels.
    Timestamps may be datetimes, epoch milliseconds or ISO-8601 strings;
    naive values are treated as UTC.
    """

    def normalize_vote(self, payload: Mapping[str, Any]) -> VoteEvent:
        if not isinstance(payload, Mapping):
            raise MalformedEventError(f"Vote payload must be a mapping, got {type(payload).__name__}")

        entity_id = _first(payload, _ENTITY_KEYS)
        if entity_id is None or str(entity_id).strip() == "":
            raise MalformedEventError("Vote payload is missing an entity id")

        raw_ts = payload.get("timestamp")
        if raw_ts is None:
            raise MalformedEventError(f"Vote payload for {entity_id!r} is missing a timestamp")

        name = _first(payload, _NAME_KEYS)
        return VoteEvent(
            entity_id=str(entity_id),
            topic=payload.get("topic"),
            timestamp=parse_timestamp(raw_ts),
            activity_percentile=_percentile(payload),
            display_name=str(name) if name is not None else None,
            user_type=payload.get("user_type", payload.get("userType")),
        )

    def normalize_update(self, payload: Mapping[str, Any]) -> CandidateUpdate:
        if not isinstance(payload, Mapping):
            raise MalformedEventError(f"Update payload must be a mapping, got {type(payload).__name__}")

        entity_id = _first(payload, _ENTITY_KEYS)
        if entity_id is None or str(entity_id).strip() == "":
            raise MalformedEventError("Candidate update is missing an entity id")

        fields: Dict[str, Any] = {
            key: value for key, value in payload.items() if key not in _RESERVED_UPDATE_KEYS
        }
        name = _first(payload, _NAME_KEYS)
        if name is not None:
            fields["display_name"] = str(name)
        return CandidateUpdate(entity_id=str(entity_id), fields=fields)


def parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, bool):
        raise MalformedEventError(f"Unusable timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        try:
            moment = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedEventError(f"Timestamp out of range: {value!r}") from e
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            moment = datetime.fromisoformat(text)
        except ValueError as e:
            raise MalformedEventError(f"Unparseable timestamp: {value!r}") from e
    else:
        raise MalformedEventError(f"Unusable timestamp type: {type(value).__name__}")

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment


def _first(payload: Mapping[str, Any], keys) -> Optional[Any]:
    for key in keys:
        value = payload.get(key)
        if value is not None:
            return value
    return None


def _percentile(payload: Mapping[str, Any]) -> Optional[float]:
    value = payload.get("activity_percentile")
    if value is None:
        activity = payload.get("activityData")
        if isinstance(activity, Mapping):
            value = activity.get("percentile")
    if value is None:
        return None
    try:
        pct = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric activity percentile {value!r}")
        return None
    return min(100.0, max(0.0, pct))
