"""Per-request state that does not depend on HTTP.

A Context knows who the caller is (user, selected user and group,
session token and its claims, client address), runs permission checks
through the instance's Security object and executes back-end commands
with their output buffered.  The web client (pitchfork.cgi.client.Client)
extends it with the HTTP side of a request.
"""
__docformat__ = 'restructuredtext'

import ipaddress
import logging
import threading

from pitchfork import token
from pitchfork.exceptions import InvalidToken, LoginError, PitchforkException

logger = logging.getLogger('pitchfork')


class Context:
    def __init__(self, portal):
        self.portal = portal
        self.config = portal.config
        self.security = portal.security

        self.user = None
        self.sel_user = None
        self.sel_group = None

        # session token as received or issued, and its claims
        self.token = ""
        self.token_claims = {}

        self.client_ip = None
        self.bearer_auth = False
        self.status = 200

        # command output, returned by buffered()
        self.output = ""
        self.menu_loc = ""
        self.menu_walkonly = False
        self.menu_entry = None

        # set once the caller went away; long running handlers poll
        # is_disconnected() and give up early
        self.gone = threading.Event()

    # identity

    def is_logged_in(self):
        return self.user is not None

    def is_disconnected(self):
        return self.gone.is_set()

    def disconnected(self):
        self.gone.set()

    def become(self, user):
        self.user = user
        self.sel_user = user

    def is_sysadmin(self):
        if not self.is_logged_in() or not self.user.sysadmin:
            return False
        nets = self.config["WEB_SYSADMIN_RESTRICT_CIDR"]
        if not nets or self.is_loopback():
            return True
        if self.client_ip is None:
            return False
        for net in nets:
            if self.client_ip.version == net.version and \
                    self.client_ip in net:
                return True
        return False

    def can_be_sysadmin(self):
        return self.is_logged_in() and self.user.can_be_sysadmin

    def swap_sysadmin(self):
        """Toggle the SysAdmin bit for users that may be SysAdmin"""
        if not self.can_be_sysadmin():
            return False
        self.user.sysadmin = not self.user.sysadmin
        # force generation of a new token
        self.token = ""
        return True

    def is_loopback(self):
        return self.client_ip is not None and self.client_ip.is_loopback

    def is_bearer_auth(self):
        return self.bearer_auth

    def set_client_ip(self, ip):
        if self.client_ip is not None:
            raise PitchforkException("Client IP already set")
        self.client_ip = ipaddress.ip_address(ip)

    def select_user(self, username):
        self.sel_user = self.portal.users.fetch(username)

    def select_group(self, name):
        self.sel_group = self.portal.users.fetch_group(name)

    def i_am_group_admin(self):
        if not self.is_logged_in() or self.sel_group is None:
            return False
        if self.is_sysadmin():
            return True
        ismember, isadmin, can_see = self.sel_group.is_member(
            self.user.username)
        return ismember and isadmin

    def is_group_member(self):
        if not self.is_logged_in() or self.sel_user is None or \
                self.sel_group is None:
            return False
        ismember, isadmin, can_see = self.sel_group.is_member(
            self.user.username)
        if not ismember:
            return False
        # group admins can always select users, even when blocked
        if self.i_am_group_admin():
            return True
        return can_see

    # permissions

    def check_perms(self, what, perms):
        return self.security.check_perms(self, what, perms)

    def check_perms_t(self, what, permstr):
        return self.security.check_perms_t(self, what, permstr)

    def has_perms(self, what, perms):
        return self.security.has_perms(self, what, perms)

    # session tokens

    def new_token(self):
        """Issue a fresh session token for the current user"""
        if not self.is_logged_in():
            raise LoginError("Not authenticated")
        self.token_claims = {
            "userdesc": self.user.fullname,
            "issysadmin": bool(self.user.sysadmin),
        }
        self.token = self.portal.tokens.new(token.SESSION_TOKEN,
            self.user.username, self.config["JWT_TOKEN_EXPIRATION_MINUTES"],
            self.token_claims)
        return self.token

    def login_token(self, tok):
        """Become the user named by a session token

        Returns the near-expiry flag, raises InvalidToken.
        """
        self.token = ""
        claims, expsoon = self.portal.tokens.parse(tok, token.SESSION_TOKEN)
        try:
            user = self.portal.users.fetch(claims["sub"])
        except KeyError:
            logger.debug("No such user %r", claims["sub"])
            raise InvalidToken("No such user")
        user.sysadmin = bool(claims.get("issysadmin")) and \
            user.can_be_sysadmin
        self.token_claims = claims
        self.become(user)
        self.token = tok
        return expsoon

    def login(self, username, password, twofactor=""):
        try:
            user = self.portal.users.check_auth(username, password, twofactor)
        except LoginError as e:
            # the details only go to the log
            logger.error("CheckAuth(%s): %s", username, e)
            if self.client_ip is not None:
                self.portal.iptrk.count(self.client_ip)
            raise LoginError("Login incorrect")
        # force generation of a new token
        self.token = ""
        self.become(user)
        logger.info("User %s logged in", username)

    def logout(self):
        if self.token:
            self.portal.tokens.invalidate(self.token, self.token_claims)
        self.user = None
        self.sel_user = None
        self.token = ""
        self.token_claims = {}

    # status, set by commands and handlers

    def set_status(self, status):
        self.status = status

    # command output

    def out(self, txt):
        self.output += txt

    def outln(self, txt=""):
        self.out(txt + "\n")

    def buffered(self):
        """Return and clear the output of the last commands"""
        o = self.output
        self.output = ""
        return o

    # commands

    def menu(self, args, menu):
        self.portal.menu_override(self, menu)
        menu.dispatch(self, args)

    def cmd(self, args):
        """Run a command given as argument list"""
        self.menu_loc = ""
        self.menu(args, self.portal.cli_menu)

    def cmd_out(self, cmd, args):
        """Run cmd (space separated words) with args, return its output"""
        if cmd:
            cmds = cmd.split(" ") + list(args)
        else:
            cmds = list(args)
        try:
            self.cmd(cmds)
        finally:
            msg = self.buffered()
        return msg

    def walk_menu(self, args):
        """Return the MenuEntry a command line resolves to, without
        running it"""
        self.menu_entry = None
        self.menu_walkonly = True
        try:
            self.cmd(args)
        finally:
            self.menu_walkonly = False
        return self.menu_entry

# vim: set filetype=python sts=4 sw=4 et si :
