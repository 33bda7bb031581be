#
# Copyright (c) 2001 Bizar Software Pty Ltd (http://www.bizarsoftware.com.au/)
# This module is free software, and you may redistribute it and/or modify
# under the same terms as Python, so long as this copyright message and
# disclaimer are retained in their original form.
#
# IN NO EVENT SHALL BIZAR SOFTWARE PTY LTD BE LIABLE TO ANY PARTY FOR
# DIRECT, INDIRECT, SPECIAL, INCIDENTAL, OR CONSEQUENTIAL DAMAGES ARISING
# OUT OF THE USE OF THIS CODE, EVEN IF THE AUTHOR HAS BEEN ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
#
# BIZAR SOFTWARE PTY LTD SPECIFICALLY DISCLAIMS ANY WARRANTIES, INCLUDING,
# BUT NOT LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE.  THE CODE PROVIDED HEREUNDER IS ON AN "AS IS"
# BASIS, AND THERE IS NO OBLIGATION WHATSOEVER TO PROVIDE MAINTENANCE,
# SUPPORT, UPDATES, ENHANCEMENTS, OR MODIFICATIONS.
#

"""Users and groups as seen by the request core.

Persistence is not part of the core: the classes here keep everything
in memory and define the interface a database backed implementation
provides (fetch, check_auth, shared_groups, is_member).
"""
__docformat__ = 'restructuredtext'

import hmac
import logging
import secrets
import threading
from base64 import b64decode, b64encode
from hashlib import pbkdf2_hmac

from pitchfork.exceptions import LoginError

logger = logging.getLogger('pitchfork')

# default rounds for new password hashes
PBKDF2_ROUNDS = 250000


class PasswordValueError(ValueError):
    """ The password value is not valid """
    pass


# NOTE: PBKDF2 hash is using this variant of base64 to minimize encoding size
def h64encode(data):
    """encode using variant of base64"""
    return b64encode(data, b"./").strip(b"=\n").decode("ascii")


def h64decode(data):
    """decode using variant of base64"""
    data = data.encode("ascii")
    off = len(data) % 4
    if off == 0:
        return b64decode(data, b"./")
    elif off == 1:
        raise ValueError("Invalid base64 input")
    elif off == 2:
        return b64decode(data + b"==", b"./")
    else:
        return b64decode(data + b"=", b"./")


def pbkdf2_unpack(encrypted):
    """ unpack pbkdf2 encrypted password into parts,
        assume it has format "{rounds}${salt}${digest}
    """
    try:
        rounds, salt, digest = encrypted.split("$")
    except ValueError:
        raise PasswordValueError("invalid PBKDF2 hash (wrong number of "
                                 "separators)")
    if rounds.startswith("0"):
        raise PasswordValueError("invalid PBKDF2 hash (zero-padded rounds)")
    try:
        rounds = int(rounds)
    except ValueError:
        raise PasswordValueError("invalid PBKDF2 hash (invalid rounds)")
    return rounds, salt, h64decode(salt), digest


def encode_password(plaintext, other=None, rounds=PBKDF2_ROUNDS):
    """Hash plaintext with PBKDF2-SHA512.

    When other (an existing hash) is given its salt and rounds are
    reused, so the result can be compared with it.
    """
    if other:
        rounds, salt, raw_salt, _digest = pbkdf2_unpack(other)
    else:
        raw_salt = secrets.token_bytes(20)
        salt = h64encode(raw_salt)
    if rounds < 1000:
        raise PasswordValueError("invalid PBKDF2 hash (rounds too low)")
    raw_digest = pbkdf2_hmac("sha512", (plaintext or "").encode("utf-8"),
                             raw_salt, rounds, 64)
    return "%d$%s$%s" % (rounds, salt, h64encode(raw_digest))


class User:
    """A portal member

    sysadmin is the effective SysAdmin bit of the session; a user with
    can_be_sysadmin may toggle it (see Context.swap_sysadmin()).
    """

    def __init__(self, username, fullname="", password=None,
                 can_be_sysadmin=False, sysadmin=None, groups=None):
        self.username = username
        self.fullname = fullname or username
        self.password = password
        self.can_be_sysadmin = can_be_sysadmin
        if sysadmin is None:
            sysadmin = can_be_sysadmin
        self.sysadmin = sysadmin
        self.groups = set(groups or ())

    def __repr__(self):
        return "<User %s>" % self.username

    def set_password(self, plaintext, rounds=PBKDF2_ROUNDS):
        self.password = encode_password(plaintext, rounds=rounds)

    def check_password(self, plaintext):
        if not self.password:
            return False
        return hmac.compare_digest(self.password,
                                   encode_password(plaintext, self.password))

    def shared_groups(self, other):
        """True when this user and other have a group in common"""
        return bool(self.groups & other.groups)


class Group:
    """A group of members with optional wiki, file store and calendar

    members maps a username to a tuple (admin, can_see).
    """

    def __init__(self, name, features=("wiki", "file", "calendar")):
        self.name = name
        self.features = set(features)
        self.members = {}

    def __repr__(self):
        return "<Group %s>" % self.name

    def add_member(self, username, admin=False, can_see=True):
        self.members[username] = (admin, can_see)

    def has_feature(self, feature):
        return feature in self.features

    def is_member(self, username):
        """Return (ismember, isadmin, can_see)"""
        if username not in self.members:
            return False, False, False
        admin, can_see = self.members[username]
        return True, admin, can_see


class UserDB:
    """In memory user and group registry"""

    def __init__(self):
        self.users = {}
        self.groups = {}
        self.lock = threading.Lock()

    def add_user(self, user):
        with self.lock:
            self.users[user.username] = user
        return user

    def add_group(self, group):
        with self.lock:
            self.groups[group.name] = group
            for username in group.members:
                if username in self.users:
                    self.users[username].groups.add(group.name)
        return group

    def fetch(self, username):
        """Return a copy of the user, the session may change it"""
        with self.lock:
            user = self.users.get(username)
        if user is None:
            raise KeyError(username)
        return User(user.username, user.fullname, user.password,
                    user.can_be_sysadmin, user.sysadmin, user.groups)

    def fetch_group(self, name):
        with self.lock:
            return self.groups[name]

    def check_auth(self, username, password, twofactor=""):
        """Return the user when the credentials are right

        Raises LoginError otherwise.  Second factors are not kept by
        this registry, a non-empty twofactor value is rejected.
        """
        try:
            user = self.fetch(username)
        except KeyError:
            raise LoginError("No such user %r" % username)
        if not user.check_password(password):
            raise LoginError("Wrong password for %r" % username)
        if twofactor:
            raise LoginError("No second factor configured for %r" % username)
        return user

# vim: set filetype=python sts=4 sw=4 et si :
