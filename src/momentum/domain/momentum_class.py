from enum import Enum


class MomentumClass(Enum):
    HIGH_MOMENTUM = "high-momentum"
    MEDIUM_MOMENTUM = "medium-momentum"
    STABLE = "stable"
    DECLINING = "declining"
    FALLING = "falling"

    @classmethod
    def classify(cls, momentum: float) -> 'MomentumClass':
        """
        Non-overlapping partition of the real line; every momentum gets exactly one class.
        """
        if momentum > 2:
            return cls.HIGH_MOMENTUM
        if momentum > 0.5:
            return cls.MEDIUM_MOMENTUM
        if momentum > -0.5:
            return cls.STABLE
        if momentum > -2:
            return cls.DECLINING
        return cls.FALLING


def is_rising(momentum: float) -> bool:
    return momentum > 0


def is_falling(momentum: float) -> bool:
    # Asymmetric with is_rising: near-zero negatives stay "not falling".
    return momentum < -0.1
