"""Risk engine error taxonomy"""

from ..reference_data.exceptions import (
    MissingReferenceData,
    MultiplierConfigError,
    ReferenceDataError,
)


class RiskEngineError(Exception):
    """Base class for errors raised while scoring an assessment"""


class InvalidCharacteristicValue(RiskEngineError):
    """A characteristic value cannot be evaluated against a rule's condition

    The offending rule is skipped; the rest of the computation continues.
    """

    def __init__(self, rule_id: str, characteristic_type: str, value, expected: str):
        self.rule_id = rule_id
        self.characteristic_type = characteristic_type
        self.value = value
        self.expected = expected
        super().__init__(
            f"Rule '{rule_id}' expects {expected} for '{characteristic_type}', "
            f"got {type(value).__name__} {value!r}"
        )


__all__ = [
    "RiskEngineError",
    "InvalidCharacteristicValue",
    "MissingReferenceData",
    "MultiplierConfigError",
    "ReferenceDataError",
]
