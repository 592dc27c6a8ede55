class PlannerError(Exception):
    """Base exception for planner errors"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationRejection(PlannerError):
    """A placement that breaks a degree rule. Carries the user-facing reason."""
    def __init__(self, reason: str, rule: str = "rejected"):
        self.reason = reason
        self.rule = rule
        super().__init__(reason)


class NotFoundError(PlannerError):
    """Course or semester identifier absent from the catalog or schedule"""
    def __init__(self, kind: str, identifier: str):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind.capitalize()} not found: {identifier}")


class MalformedAuditRecord(PlannerError):
    """A parsed audit row that cannot be used (missing fields, bad term code)"""
    pass


class StateCorruption(PlannerError):
    """Persisted plan state with a structure the planner cannot trust"""
    pass
