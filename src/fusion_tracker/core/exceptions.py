"""Custom exceptions for Fusion Tracker."""


class FusionTrackerError(Exception):
    """Base exception for all Fusion Tracker errors."""

    pass


class KinematicsMismatchError(FusionTrackerError):
    """Module-state input does not match the kinematics model."""

    def __init__(self, message: str = "Module count does not match kinematics model") -> None:
        self.message = message
        super().__init__(self.message)


class CameraConfigError(FusionTrackerError):
    """Camera was configured in a way it cannot operate."""

    def __init__(self, message: str = "Invalid camera configuration") -> None:
        self.message = message
        super().__init__(self.message)


class FieldLayoutError(FusionTrackerError):
    """Field layout file is missing or malformed."""

    def __init__(self, message: str = "Invalid field layout") -> None:
        self.message = message
        super().__init__(self.message)


class TrackerNotInitializedError(FusionTrackerError):
    """The tracker was used before being created."""

    def __init__(self, message: str = "Tracker has not been created") -> None:
        self.message = message
        super().__init__(self.message)
