"""Exceptions for use in Pitchfork's web interface.
"""

__docformat__ = 'restructuredtext'


class FormError(ValueError):
    """An 'expected' exception occurred during form parsing.

    That is, something we know can go wrong, and don't want to alarm the user
    with.

    We trap this at the user interface level and feed back a nice error to the
    user.

    """
    default_message = None

    def __init__(self, *args):
        if not args and self.default_message:
            args = (self.default_message,)
        ValueError.__init__(self, *args)


class NotPOSTError(FormError):
    """A form value was requested outside of a POST request."""
    default_message = "Not a POST request"


class InvalidCSRFError(FormError):
    """The CSRF token of the request did not validate."""
    default_message = "Invalid CSRF Token"


class MissingValueError(FormError):
    """The requested form value was not submitted."""
    default_message = "Missing value"

# vim: set filetype=python sts=4 sw=4 et si :
