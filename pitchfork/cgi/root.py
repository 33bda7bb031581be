"""The pages every portal has: the root menu, error pages, login and
logout, static files, the CLI and the API.

Every handler takes the request's Client (named cui) as only argument
and stages its response on it; h_root() flushes it.
"""
__docformat__ = 'restructuredtext'

import logging
import os
import shlex
from http.server import BaseHTTPRequestHandler

from pitchfork.cgi.exceptions import FormError
from pitchfork.cgi.form import (Hidden, Ignore, Note, Password, Record,
                                String, Submit)
from pitchfork.cgi.form_parser import handle_cmd
from pitchfork.cgi.menu import UIMenu, UIMenuEntry
from pitchfork.exceptions import (InvalidRemoteAddress, PermissionDenied,
                                  PitchforkException)
from pitchfork.security import (PERM_API, PERM_CLI, PERM_HIDDEN,
                                PERM_LOOPBACK, PERM_NONE, PERM_NOSUBS,
                                PERM_OAUTH, PERM_SYS_ADMIN, PERM_USER,
                                PERM_USER_SELF, PERM_USER_VIEW)

logger = logging.getLogger('pitchfork.cgi')

# first path segments served from the webroot
STATIC_PREFIXES = ("favicon.ico", "css", "gfx", "js")


def status_text(status):
    try:
        return BaseHTTPRequestHandler.responses[status][0]
    except KeyError:
        return "Unknown"


### Errors

def h_errmsgs(cui, msgs):
    """Show human readable error messages, with a 200 status"""
    cui.set_page_menu(None)
    p = cui.page_def()
    p["messages"] = list(msgs)
    cui.page_show("misc/error", p)


def h_errmsg(cui, err):
    h_errmsgs(cui, [str(err)])


def h_error(cui, status):
    """Show the error page for an HTTP status

    A 401 shows the login page instead.
    """
    cui.set_status(status)

    if status == 401:
        h_login(cui)
        return

    msg = status_text(status)
    status_str = str(status)

    if status == 503:
        msg = "System is under maintenance"
        status_str = ""
    else:
        cui.add_crumb("", "HTTP Error", "Error - HTTP %s %s"
                      % (status_str, msg))

    cui.set_page_menu(None)
    p = cui.page_def()
    p["messages"] = [msg]
    cui.page_show("misc/error", p)

    logger.error("HTTP Error %s: %s for %s", status_str, msg,
                 cui.get_full_path())


def h_no_access(cui):
    """Not found for users, the login page for everybody else"""
    if cui.is_logged_in():
        logger.error("NoAccess: Logged In %s", cui.user.username)
        h_error(cui, 404)
    else:
        logger.error("NoAccess: Not Logged in")
        h_error(cui, 401)


### Static files

def h_static_file(cui, path):
    # no directory listings
    if path.endswith("/"):
        h_error(cui, 403)
        return

    webroot = cui.config["WEBROOT"]
    filename = os.path.normpath(os.path.join(webroot, path))
    if not filename.startswith(os.path.normpath(webroot) + os.sep) or \
            not os.path.isfile(filename):
        logger.info("Could not find webroot file %s", path)
        h_error(cui, 404)
        return

    # may be cached for an hour
    cui.set_expires(60)

    # served by flush()
    cui.set_static_file(filename)


def h_static(cui):
    h_static_file(cui, cui.get_full_path()[1:])


def h_robots(cui):
    if cui.config["NOINDEX"]:
        h_static_file(cui, "robots.txt")
    else:
        h_static_file(cui, "robots-ok.txt")


### Pages

def h_index(cui):
    cui.page_show("index", cui.page_def())


def h_wellknown(cui):
    path = cui.get_path()
    if not path or path[0] == "":
        cui.page_show("misc/wellknown", cui.page_def())
        return
    h_error(cui, 404)


class Login(Record):
    username = String(label="Username", hint="Your username",
                      min="CFG_USERNAME_MIN_LENGTH", required=True,
                      placeholder="CFG_USERNAME_EXAMPLE")
    password = Password(label="Password", hint="Your password", min=6,
                        required=True,
                        placeholder="4.very/difficult_p4ssw0rd")
    twofactor = String(label="Two Factor Code",
                       hint="Two Factor Token (if configured)",
                       placeholder="314159")
    comeback = Hidden(label="Comeback")
    required = Note(label="Required", required=True, htmlclass="required")
    cookies = Note(label="Cookies")
    button = Submit(label="Sign In")
    # shown below the form by pfform
    message = Ignore()
    error = Ignore()


def comeback_url(cui):
    """Where to go after logging in, empty for the login pages"""
    comeback = cui.get_full_path()
    if comeback == "/" or comeback.startswith("/login/") or \
            comeback.startswith("/logout/"):
        return ""
    query = cui.env.get("QUERY_STRING", "")
    if query:
        comeback += "?" + query
    return comeback


def h_login(cui):
    cui.set_status(401)

    msg = ""
    errmsg = ""
    try:
        msg = handle_cmd(cui, "system login", ["", "", ""])
    except (FormError, PitchforkException) as e:
        errmsg = str(e)

    if cui.is_logged_in():
        try:
            comeback = cui.form_value("comeback")
        except FormError:
            comeback = ""
        if comeback in ("", "Comeback"):
            comeback = "/user/%s/" % cui.user.username
        cui.set_redirect(comeback, 303)
        return

    login = Login(required="Denotes a required field",
                  cookies="Note: Web cookies are required beyond this point",
                  comeback=comeback_url(cui), message=msg, error=errmsg)
    p = cui.page_def()
    p["login"] = login
    cui.page_show("misc/login", p)


def h_logout(cui):
    cui.logout()
    cui.set_redirect("/login/", 303)


class UserProfile(Record):
    username = String(label="Username", formedit=False)
    fullname = String(label="Full Name", formedit=False)
    sysadmin = Note(label="SysAdmin", omitempty=True)


def h_user_index(cui):
    user = cui.sel_user
    profile = UserProfile(username=user.username, fullname=user.fullname)
    if cui.user.username == user.username and user.can_be_sysadmin:
        profile.sysadmin = cui.user.sysadmin and "enabled" or "disabled"
    p = cui.page_def()
    p["profile"] = profile
    cui.page_show("user/index", p)


def h_user(cui):
    """/user/<username>/"""
    path = cui.get_path()
    if not path or path[0] == "":
        h_error(cui, 404)
        return

    try:
        cui.select_user(path[0])
        cui.check_perms("SelectUser(%s)" % path[0],
                        PERM_USER_SELF | PERM_USER_VIEW)
    except (KeyError, PermissionDenied) as e:
        logger.error("User: %s", e)
        h_no_access(cui)
        return

    user = cui.sel_user
    cui.add_crumb(path[0], user.username, "%s (%s)" % (user.fullname,
                                                       user.username))
    cui.set_path(path[1:])

    cui.ui_menu(UIMenu([
        UIMenuEntry("", "", PERM_USER | PERM_USER_VIEW, h_user_index),
    ]))


def h_unprovided(cui):
    """Placeholders for the parts an application provides"""
    logger.info("No handler installed for %s", cui.get_full_path())
    h_error(cui, 404)


class CLIForm(Record):
    cmd = String(label="Command", hint="The command to execute")
    button = Submit(label="Execute")


def h_cli(cui):
    out = ""
    err = None
    cmd = ""

    if cui.is_post():
        try:
            cmd = cui.form_value("cmd")
        except FormError as e:
            err = e

    if cmd == "":
        cmd = "help"

    if err is None:
        try:
            args = shlex.split(cmd)
            out = cui.cmd_out("", args)
        except (PitchforkException, ValueError) as e:
            err = e

        # the command might have logged us out
        if not cui.is_logged_in():
            h_logout(cui)
            return

    if err is not None:
        out += "An error occured: %s\n" % err

    cui.set_page_menu(None)
    cui.add_crumb("", "CLI", "CLI")

    p = cui.page_def()
    p["output"] = out
    p["opt"] = CLIForm(cmd=cmd)
    cui.page_show("misc/cli", p)


def h_api(cui):
    """/api/<cmd>/<arg>/<arg...>, plain text output"""
    if not cui.token:
        cui.set_bearer_auth(True)

    cui.set_content_type("text/plain")
    try:
        cui.cmd(cui.get_path())
    except (PitchforkException, ValueError) as e:
        cui.outln("An error occured: %s" % e)


def h_oauth(cui):
    from pitchfork.cgi import oauth2
    oauth2.h_oauth(cui)


def root_menu():
    return UIMenu([
        UIMenuEntry("", "Home", PERM_NONE, h_index),

        # service discovery
        UIMenuEntry(".well-known", "", PERM_NONE, h_wellknown),

        UIMenuEntry("robots.txt", "", PERM_NONE | PERM_NOSUBS, h_robots),

        # shown in the main menu
        UIMenuEntry("user", "User", PERM_USER | PERM_HIDDEN, h_user),
        UIMenuEntry("group", "Group", PERM_USER | PERM_HIDDEN, h_unprovided),
        UIMenuEntry("system", "System", PERM_SYS_ADMIN | PERM_HIDDEN,
                    h_unprovided),

        UIMenuEntry("cli", "CLI", PERM_CLI, h_cli),
        UIMenuEntry("api", "", PERM_LOOPBACK | PERM_API, h_api),
        UIMenuEntry("oauth2", "OAuth2", PERM_OAUTH, h_oauth),
        UIMenuEntry("login", "Login", PERM_NONE | PERM_USER | PERM_NOSUBS,
                    h_login),
        UIMenuEntry("logout", "Logout",
                    PERM_NONE | PERM_USER | PERM_HIDDEN | PERM_NOSUBS,
                    h_logout),
    ])


def h_root(cui):
    """Handle one request from start to flush"""
    try:
        cui.initialise()
    except (ValueError, UnicodeError) as e:
        logger.error("Request initialisation failed: %s", e)
        h_error(cui, 400)
        cui.flush()
        return

    try:
        cui.set_client()
    except (InvalidRemoteAddress, ValueError) as e:
        # can't tell who they are
        logger.error("SetClientIP: %s", e)
        h_error(cui, 503)
        cui.flush()
        return

    path = cui.get_path()

    if path[0] in STATIC_PREFIXES:
        h_static(cui)
        cui.flush()
        return

    # https://example.net/~username/ is the home of the user
    if path[0].startswith("~"):
        cui.set_redirect("/user/%s/" % path[0][1:], 302)
        cui.flush()
        return

    cui.init_token()

    cui.ui_menu(root_menu())

    cui.flush()

# vim: set filetype=python sts=4 sw=4 et si :
