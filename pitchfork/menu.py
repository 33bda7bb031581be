"""Command menus.

Back-end functionality is reached through a tree of commands, much like
a shell: ``system iptrk list``, ``system login <username> <password>``.
The web interface calls these commands with string arguments through
Context.cmd() and Context.cmd_out(); forms are bound to them by the form
engine (see pitchfork.cgi.form_parser).

Each argument name may carry ``#`` separated options describing how the
web interface fills it in, for example ``password#password`` (masked in
logs) or ``image#file#200x200#yes`` (an upload, resized, base64).
"""
__docformat__ = 'restructuredtext'

import logging

from pitchfork.exceptions import PermissionDenied, UnknownCommand, UsageError
from pitchfork.security import PERM_NONE, PERM_USER, PERM_SYS_ADMIN

logger = logging.getLogger('pitchfork')

# args_max of an entry that descends into a sub menu
SUBMENU = -1


class MenuEntry:
    """A single command

    Parameters:
        cmd - the command word
        fun - called as fun(ctx, args)
        args_min, args_max - bounds on the number of arguments,
            args_max of SUBMENU means the function walks a sub menu
        args - argument names, with optional '#' separated options
        perms - permission bits needed to run the command
        desc - one line description shown in help
    """

    def __init__(self, cmd, fun, args_min=0, args_max=0, args=None,
                 perms=PERM_NONE, desc=""):
        self.cmd = cmd
        self.fun = fun
        self.args_min = args_min
        self.args_max = args_max
        self.args = args
        self.perms = perms
        self.desc = desc

    def __repr__(self):
        return "<MenuEntry %s>" % self.cmd


class Menu:
    def __init__(self, entries=None):
        self.entries = list(entries or [])

    def __iter__(self):
        return iter(self.entries)

    def _find(self, cmd):
        for entry in self.entries:
            if entry.cmd == cmd:
                return entry
        return None

    def add(self, *entries):
        self.entries.extend(entries)

    def replace(self, cmd, fun):
        entry = self._find(cmd)
        if entry is not None:
            entry.fun = fun

    def remove(self, cmd):
        entry = self._find(cmd)
        if entry is not None:
            self.entries.remove(entry)

    def add_perms(self, cmd, perms):
        entry = self._find(cmd)
        if entry is not None:
            entry.perms |= perms

    def del_perms(self, cmd, perms):
        entry = self._find(cmd)
        if entry is not None:
            entry.perms &= ~perms

    def set_perms(self, cmd, perms):
        entry = self._find(cmd)
        if entry is not None:
            entry.perms = perms

    def help(self, ctx):
        sysname = ctx.config["SYSNAME"]
        if ctx.menu_loc == "":
            ctx.outln("%s Help" % sysname)
        else:
            ctx.outln('%s Help for: "%s"' % (sysname, ctx.menu_loc))

        if ctx.is_logged_in():
            ss = ""
            if ctx.is_sysadmin():
                ss = " [sysadmin]"
            elif ctx.user.can_be_sysadmin:
                ss = " [NOT sysadmin]"
            ctx.outln("User: %s%s" % (ctx.user.username, ss))
        else:
            ctx.outln("User: [Not authenticated]")
        ctx.outln("")

        if ctx.menu_loc == "":
            ctx.out("Welcome to the %s menu system which is command line "
                    "interface (CLI) based.\n"
                    "Note that when a command is not in the help menu the "
                    "selected user might not have permissions for it.\n"
                    "\n"
                    "Each section, items marked [SUB], has its own 'help' "
                    "command.\n"
                    "\n"
                    "The following commands are available on the root "
                    "level:\n" % sysname)

        for entry in self.entries:
            if not ctx.has_perms("Menu(%s)/help" % entry.cmd, entry.perms):
                continue
            opts = ""
            if entry.args is not None:
                opts = " ".join(["<%s>" % a.split("#")[0] for a in entry.args])
            elif entry.args_max == SUBMENU:
                opts = "[SUB]"
            ctx.outln(" %-20s %-20s %-20s" % (entry.cmd, opts, entry.desc))

    def dispatch(self, ctx, args):
        """Run the command named by args[0] with the remaining arguments

        While the context walks the menu (see Context.walk_menu()) the
        entry of the command is recorded instead of running it.
        """
        arg = "help"
        if args and args[0] != "":
            arg = args[0].lower()

        if arg == "help":
            if ctx.menu_walkonly:
                raise UsageError("help not allowed during menuwalk")
            self.help(ctx)
            return

        entry = self._find(arg)
        if entry is None:
            msg = ctx.menu_loc
            if msg:
                msg += " "
            raise UnknownCommand(msg + arg)

        nargs = list(args[1:])
        if ctx.menu_loc:
            ctx.menu_loc += " "
        ctx.menu_loc += arg

        try:
            ctx.check_perms("Menu(%s)" % entry.cmd, entry.perms)
        except PermissionDenied as e:
            user = "<<notloggedin>>"
            if ctx.is_logged_in():
                user = ctx.user.username
            logger.warning("User %s tried access to command '%s': %s",
                user, ctx.menu_loc, e)
            ctx.set_status(401)
            raise

        if entry.args is not None and ctx.menu_walkonly:
            ctx.menu_entry = entry
            return

        if entry.args_min > len(nargs):
            raise UsageError("Not enough arguments for '%s' (got %d, need "
                "at least %d)" % (ctx.menu_loc, len(nargs), entry.args_min))

        if entry.args_max != SUBMENU and len(nargs) > entry.args_max:
            raise UsageError("Too many arguments for '%s' (got %d, but want "
                "a maximum of %d)" % (ctx.menu_loc, len(nargs),
                entry.args_max))

        entry.fun(ctx, nargs)


def submenu(menu):
    """Return an entry function descending into menu"""
    def fun(ctx, args):
        ctx.menu(args, menu)
    return fun


def system_login(ctx, args):
    twofactor = ""
    if len(args) > 2:
        twofactor = args[2]
    ctx.login(args[0], args[1], twofactor)
    ctx.outln("Login successful")


def system_logout(ctx, args):
    ctx.logout()
    ctx.outln("Logout successful")


def system_swapadmin(ctx, args):
    if ctx.swap_sysadmin():
        ctx.outln("SysAdmin privileges %s" % (
            ctx.user.sysadmin and "enabled" or "disabled"))
    else:
        ctx.outln("Can't become SysAdmin")


def main_menu():
    """Return the root command menu"""
    from pitchfork import iptrk, security

    iptrk_menu = Menu([
        MenuEntry("list", iptrk.iptrk_list, 0, 0, None, PERM_SYS_ADMIN,
            "List the contents of the IPtrk tables"),
        MenuEntry("flush", iptrk.iptrk_flush, 0, 0, None, PERM_SYS_ADMIN,
            "Flush the IPtrk tables"),
        MenuEntry("remove", iptrk.iptrk_remove, 1, 1, ["ip"],
            PERM_SYS_ADMIN, "Remove an address from the IPtrk tables"),
    ])

    system_menu = Menu([
        MenuEntry("login", system_login, 2, 3,
            ["username", "password#password", "twofactor#twofactor"],
            PERM_NONE, "Login"),
        MenuEntry("logout", system_logout, 0, 0, None, PERM_USER,
            "Logout"),
        MenuEntry("swapadmin", system_swapadmin, 0, 0, None,
            security.PERM_SYS_ADMIN_CAN, "Swap from/to SysAdmin mode"),
        MenuEntry("iptrk", submenu(iptrk_menu), 0, SUBMENU, None,
            PERM_SYS_ADMIN, "IP Tracking"),
    ])

    return Menu([
        MenuEntry("system", submenu(system_menu), 0, SUBMENU, None,
            PERM_NONE, "System commands"),
    ])

# vim: set filetype=python sts=4 sw=4 et si :
