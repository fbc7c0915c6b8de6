"""Errors raised while reading or loading reference data"""


class ReferenceDataError(Exception):
    """Base class for reference data problems"""


class MissingReferenceData(ReferenceDataError):
    """A location or business type profile is absent for a hazard

    Recovered locally: callers receive estimated defaults flagged with
    ``is_estimated`` instead of this error.
    """

    def __init__(self, kind: str, key: str, hazard_id: str):
        self.kind = kind
        self.key = key
        self.hazard_id = hazard_id
        super().__init__(f"No {kind} profile for '{key}' / hazard '{hazard_id}'")


class MultiplierConfigError(ReferenceDataError):
    """A multiplier rule definition is invalid and was rejected at load time"""

    def __init__(self, rule_id: str, reason: str):
        self.rule_id = rule_id
        self.reason = reason
        super().__init__(f"Invalid multiplier rule '{rule_id}': {reason}")
