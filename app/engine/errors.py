class ChartError(Exception):
    pass


class UnknownGranularityError(ChartError, ValueError):
    def __init__(self, granularity: object) -> None:
        super().__init__(f"Unknown granularity: '{granularity}'")
        self.granularity = granularity


class SurfaceUnavailableError(ChartError):
    """Raised when a drawing surface cannot get its backing store or painter."""
