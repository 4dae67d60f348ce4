"""Exceptions raised while loading task, overlay and storyline definitions."""


class DataError(Exception):
    """Base exception for the data layer."""


class DataLoadError(DataError):
    """A definition file is missing, unreadable or not valid JSON."""


class DataValidationError(DataError):
    """A definition has the wrong shape: bad types, duplicate ids, unknown node kinds."""


class DataReferenceError(DataError):
    """A storyline edge or overlay entry points at an id that is not defined."""
