from dataclasses import dataclass
from enum import Enum


class ApplyOutcome(Enum):
    APPLIED = "applied"
    REJECTED_MALFORMED = "rejected_malformed"
    DROPPED_FILTERED = "dropped_filtered"
    DROPPED_OUT_OF_WINDOW = "dropped_out_of_window"
    DROPPED_STALE = "dropped_stale"


@dataclass(frozen=True)
class IngestionDiagnostics:
    accepted: int = 0
    malformed: int = 0
    filtered: int = 0
    out_of_window: int = 0
    stale_after_resync: int = 0
    metadata_updates: int = 0

    def record(self, outcome: ApplyOutcome) -> 'IngestionDiagnostics':
        field_name = _OUTCOME_FIELDS[outcome]
        values = dict(self.__dict__)
        values[field_name] += 1
        return IngestionDiagnostics(**values)

    def with_metadata_update(self) -> 'IngestionDiagnostics':
        values = dict(self.__dict__)
        values["metadata_updates"] += 1
        return IngestionDiagnostics(**values)



_OUTCOME_FIELDS = {
    ApplyOutcome.APPLIED: "accepted",
    ApplyOutcome.REJECTED_MALFORMED: "malformed",
    ApplyOutcome.DROPPED_FILTERED: "filtered",
    ApplyOutcome.DROPPED_OUT_OF_WINDOW: "out_of_window",
    ApplyOutcome.DROPPED_STALE: "stale_after_resync",
}
