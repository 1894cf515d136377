"""Domain errors raised by the crud and service layers."""


class GymAccessError(Exception):
    """Base class for errors scoped to a single request."""


class NotFoundError(GymAccessError):
    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class ValidationError(GymAccessError):
    """Input rejected before anything was written."""


class SubscriptionConflictError(ValidationError):
    """Client already holds an overlapping ACTIVE subscription."""


class InvalidTransitionError(ValidationError):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot change subscription status from {current} to {requested}")
