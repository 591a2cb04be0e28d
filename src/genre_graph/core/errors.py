"""Exception types raised by genre_graph."""


class GenreGraphError(Exception):
    """Base class for library errors."""


class AuthenticationError(GenreGraphError):
    """The catalog rejected or could not issue an access token."""


class CatalogError(GenreGraphError):
    """The catalog returned a response that could not be used."""
