# dealership/errors.py
"""Domain exceptions shared by the import pipeline and the admin services."""


class DealershipError(Exception):
    """Base class for errors raised by this package."""


class FetchError(DealershipError):
    """A connector could not retrieve or parse its source feed."""


class SlugConflictError(DealershipError):
    """The generated slug is already taken; retry with a fresh suffix."""

    def __init__(self, slug: str):
        super().__init__(f"Slug already in use: {slug}")
        self.slug = slug


class VehicleNotFound(DealershipError):
    def __init__(self, key: str):
        super().__init__(f"Vehicle not found: {key}")
        self.key = key
