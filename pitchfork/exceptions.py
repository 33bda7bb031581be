"""Exceptions for use across all Pitchfork components.
"""

__docformat__ = 'restructuredtext'


class PitchforkException(Exception):
    pass

class LoginError(PitchforkException):
    pass


class Unauthorised(PitchforkException):
    pass


class PermissionDenied(Unauthorised):
    """Raised by the permission gate; the message carries the reason.
    """
    pass


class InvalidToken(PitchforkException):
    """A token failed signature, expiry, invalidation or audience checks.
    """
    pass


class InvalidRemoteAddress(PitchforkException):
    pass


class UnknownCommand(PitchforkException):
    """Raised by the command menu when no entry matches.

    Callers binding forms to commands ignore this one, so a record may
    describe more fields than the back-end supports.
    """
    def __init__(self, command):
        self.command = command
        PitchforkException.__init__(self, "Unknown command: %s" % command)


class UsageError(ValueError):
    pass

# vim: set filetype=python ts=4 sw=4 et si
