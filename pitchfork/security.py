"""Handle the permission bits used to guard menus, commands and fields.
"""
__docformat__ = 'restructuredtext'

import logging

from pitchfork.exceptions import PermissionDenied, UsageError

logger = logging.getLogger('pitchfork.security')

# Permission bits.  The order defines the bit values and matches
# PERM_NAMES below (name index i is bit 1 << i).
PERM_NOTHING = 0
PERM_NONE = 1 << 1
PERM_GUEST = 1 << 2
PERM_USER = 1 << 3
PERM_USER_SELF = 1 << 4
PERM_USER_NOMINATE = 1 << 5
PERM_USER_VIEW = 1 << 6
PERM_GROUP_MEMBER = 1 << 7
PERM_GROUP_ADMIN = 1 << 8
PERM_GROUP_WIKI = 1 << 9
PERM_GROUP_FILE = 1 << 10
PERM_GROUP_CALENDAR = 1 << 11
PERM_SYS_ADMIN = 1 << 12
PERM_SYS_ADMIN_CAN = 1 << 13
PERM_CLI = 1 << 14
PERM_API = 1 << 15
PERM_OAUTH = 1 << 16
PERM_LOOPBACK = 1 << 17
PERM_HIDDEN = 1 << 18
PERM_NOCRUMB = 1 << 19
PERM_NOSUBS = 1 << 20
PERM_NOBODY = 1 << 21

# Bits free for use by applications, see Security.set_app_perms()
PERM_APP_0 = 1 << 22
PERM_APP_1 = 1 << 23
PERM_APP_2 = 1 << 24
PERM_APP_3 = 1 << 25
PERM_APP_4 = 1 << 26
PERM_APP_5 = 1 << 27
PERM_APP_6 = 1 << 28
PERM_APP_7 = 1 << 29
PERM_APP_8 = 1 << 30
PERM_APP_9 = 1 << 31

# Rendering and resolution modifiers, not audiences
PERM_MODIFIERS = PERM_HIDDEN | PERM_NOCRUMB | PERM_NOSUBS

PERM_NAMES = [
    "nothing",
    "none",
    "guest",
    "user",
    "self",
    "user_nominate",
    "user_view",
    "group_member",
    "group_admin",
    "group_wiki",
    "group_file",
    "group_calendar",
    "sysadmin",
    "sysadmin_can",
    "cli",
    "api",
    "oauth",
    "loopback",
    "hidden",
    "nocrumb",
    "nosubs",
    "nobody",
]

# Names applications gave to PERM_APP_* bits
app_perm_names = {}


def register_app_perm(bit, name):
    """Give an application permission bit a name usable in field tags."""
    app_perm_names[bit] = name.lower()


def convert_perms(permstr):
    """Convert a comma separated list of permission names into bits

    The empty string is PERM_NOTHING.  Unknown names raise UsageError.
    """
    perms = PERM_NOTHING
    for name in permstr.lower().split(","):
        name = name.strip()
        if name == "":
            continue
        if name in PERM_NAMES:
            i = PERM_NAMES.index(name)
            if i > 0:
                perms |= 1 << i
            continue
        for bit, app_name in app_perm_names.items():
            if app_name == name:
                perms |= bit
                break
        else:
            raise UsageError("Unknown permission: '%s'" % name)
    return perms


def perm_str(perms):
    """Return the comma separated names of the bits set in perms"""
    if perms == PERM_NOTHING:
        return PERM_NAMES[0]
    names = []
    for i, name in enumerate(PERM_NAMES):
        if i > 0 and perms & (1 << i):
            names.append(name)
    for bit in sorted(app_perm_names):
        if perms & bit:
            names.append(app_perm_names[bit])
    return ",".join(names)


class Security:
    """The permission gate

    One instance is shared by all requests; everything request specific
    is asked from the context passed in.

    The context must provide is_logged_in(), is_sysadmin(),
    can_be_sysadmin(), is_loopback(), is_bearer_auth(), the selected
    user and group (sel_user, sel_group), i_am_group_admin() and
    is_group_member().
    """

    def __init__(self, config):
        self.config = config
        self.app_perms = None

    def set_app_perms(self, func):
        """Install an application hook for the PERM_APP_* bits

        The hook is called as func(ctx, what, perms) and returns a tuple
        (final, ok, error); only final answers are used.
        """
        self.app_perms = func

    def check_perms(self, ctx, what, perms):
        """Check perms for the caller represented by ctx

        Returns True when allowed, raises PermissionDenied otherwise.
        The permission holds when any of the audience bits admits the
        caller; modifier bits are ignored.
        """
        perms &= ~PERM_MODIFIERS
        logger.debug("%s: %s", what, perm_str(perms))

        err = None

        if perms & PERM_NOBODY:
            raise PermissionDenied("Nobody is allowed")

        if perms == PERM_NOTHING:
            return True

        if perms & PERM_CLI:
            if ctx.is_logged_in() and self.config["WEB_ENABLE_CLI"]:
                return True
            err = "CLI is not enabled"

        if perms & PERM_API:
            if self.config["WEB_ENABLE_API"] and ctx.is_bearer_auth():
                return True
            err = "API is not enabled"

        if perms & PERM_OAUTH:
            if self.config["WEB_ENABLE_OAUTH"]:
                return True
            err = "OAuth is not enabled"

        if perms & PERM_LOOPBACK:
            if ctx.is_loopback():
                return True
            err = "Not a Loopback"

        # guests are the ones who did not log in
        if perms & PERM_GUEST:
            if not ctx.is_logged_in():
                return True
            raise PermissionDenied("Must not be authenticated")

        if perms & PERM_USER_SELF:
            if not ctx.is_logged_in():
                err = "Not Authenticated"
            elif ctx.sel_user is None:
                err = "No user selected"
            elif ctx.sel_user.username == ctx.user.username:
                return True
            else:
                err = "Different user selected"

        if perms & PERM_USER_VIEW:
            if not ctx.is_logged_in():
                err = "Not Authenticated"
            elif ctx.sel_user is None:
                err = "No user selected"
            elif ctx.sel_user.username == ctx.user.username:
                return True
            elif ctx.sel_user.shared_groups(ctx.user):
                return True
            else:
                err = "Different user selected"

        for bit, feature in ((PERM_GROUP_WIKI, "Wiki"),
                             (PERM_GROUP_FILE, "File"),
                             (PERM_GROUP_CALENDAR, "Calendar")):
            if not perms & bit:
                continue
            if ctx.sel_group is None or \
                    not ctx.sel_group.has_feature(feature.lower()):
                raise PermissionDenied("Group does not have a %s" % feature)
            if ctx.is_group_member():
                return True
            err = "Not a group member"

        if perms & PERM_NONE:
            return True

        # everything else requires a login
        if not ctx.is_logged_in():
            raise PermissionDenied("Not authenticated")

        # the PERM_SYS_ADMIN bit itself is only there for clarity
        if ctx.is_sysadmin():
            return True
        err = "Not a SysAdmin"

        if perms & PERM_USER:
            return True

        if perms & PERM_GROUP_ADMIN:
            if ctx.i_am_group_admin():
                return True
            err = "Not a group admin"

        if perms & PERM_GROUP_MEMBER:
            if ctx.is_group_member():
                return True
            err = "Not a group member"

        if perms & PERM_USER_NOMINATE:
            if ctx.sel_user is not None:
                return True
            err = "No user selected"

        if perms & PERM_SYS_ADMIN_CAN:
            if ctx.can_be_sysadmin():
                return True
            err = "Can't become SysAdmin"

        if self.app_perms is not None:
            final, ok, app_err = self.app_perms(ctx, what, perms)
            if final:
                if ok:
                    return True
                raise PermissionDenied(app_err or "Denied by application")

        raise PermissionDenied(err)

    def check_perms_t(self, ctx, what, permstr):
        """Like check_perms() with the permissions given as names"""
        return self.check_perms(ctx, what, convert_perms(permstr))

    def has_perms(self, ctx, what, perms):
        """Boolean variant of check_perms()"""
        try:
            return self.check_perms(ctx, what, perms)
        except PermissionDenied as e:
            logger.debug("%s: denied: %s", what, e)
            return False

# vim: set filetype=python sts=4 sw=4 et si :
