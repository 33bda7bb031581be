"""WWW request handler (also used in the stand-alone server).

A Client is created for every request.  Handlers (see pitchfork.cgi.root)
never write to the connection: they stage a status, headers, output, a
template or a static file on the client, and flush() turns that into
exactly one HTTP response at the end of the request.
"""
__docformat__ = 'restructuredtext'

import base64
import email.utils
import errno
import json
import logging
import mimetypes
import os
import socket
import stat
import time

import jinja2
import jwt
from werkzeug.datastructures import Headers
from werkzeug.http import dump_cookie

from pitchfork import __version__, image
from pitchfork.cgi import csrf, ipresolver, root
from pitchfork.cgi.exceptions import (InvalidCSRFError, MissingValueError,
                                      NotPOSTError)
from pitchfork.cgi.menu import Link, LinkCol, UIMenu, UIMenuEntry
from pitchfork.context import Context
from pitchfork.exceptions import InvalidToken, LoginError, PermissionDenied
from pitchfork.security import (PERM_CLI, PERM_NOCRUMB, PERM_NOSUBS,
                                PERM_SYS_ADMIN, PERM_USER, perm_str)

logger = logging.getLogger('pitchfork.cgi')

# Expiry date used to make sure things are not cached
EXPIRED_DATE = "Thu, 01 Jan 2015 01:05:03 GMT"
EXPIRED_EPOCH = 1420074303

DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


class Client(Context):
    """Instantiate to handle one WWW request.

    Client attributes at instantiation:

    - "request" is the RequestHandler of the server, used to start the
      response and write it out
    - "env" is the WSGI environment
    - "http" is the werkzeug Request, giving access to the query
      arguments, the posted form, uploads, cookies and headers

    Set by initialise():

    - "fullpath" is the requested path
    - "path" is the list of path segments still to be resolved by the
      menus, consumed by ui_menu()
    - "http_host" is the host the client asked for
    - "lang" is the preferred language of the client

    The response is staged in "status", "headers", "output", "raw",
    "show_name"/"show_data" (the template), "staticfile" and
    "redirect".
    """

    # list of network error codes that shouldn't be reported
    # (error descriptions from FreeBSD intro(2))
    IGNORE_NET_ERRORS = (
        # A write on a pipe, socket or FIFO for which there is
        # no process to read the data.
        errno.EPIPE,
        # A connection was forcibly closed by a peer.
        errno.ECONNRESET,
        # Software caused connection abort.
        errno.ECONNABORTED,
        # The connected party did not properly respond after a period
        # of time.
        errno.ETIMEDOUT,
    )

    def __init__(self, portal, request, env, http):
        Context.__init__(self, portal)
        self.request = request
        self.env = env
        self.http = http
        self.templates = portal.templates

        self.method = env.get("REQUEST_METHOD", "GET").upper()
        self.http_host = ""
        self.fullpath = ""
        self.path = []
        self.subpath = ""
        self.lang = ""

        # the full X-Forwarded-For chain, for the logs
        self.remote = ""

        self.crumbs = LinkCol()
        self.crumbpath = "/"
        self.pagemenu = None
        self.pagemenudepth = 0

        # the token as received, and whether it is about to expire
        self.token_recv = ""
        self.token_exp = False

        # cached result of check_csrf()
        self._csrf_valid = None

        # staged response
        self.headers = Headers()
        self.contenttype = ""
        self.expires = ""
        self.staticfile = ""
        self.raw = b""
        self.redirect = ""
        self.show_name = ""
        self.show_data = None
        self.returncode = 0

        self.hasflushed = False
        self.headers_done = False

    def initialise(self):
        """Derive host, path and language from the request"""
        self.http_host = self.http.host or self.config["WEB_HTTP_HOST"]
        self.fullpath = self.http.path

        # undo the encoding done by the CLI client
        path = []
        for part in self.fullpath.split("/"):
            for enc in ("%2F", "%2f"):
                part = part.replace(enc, "/")
            for enc in ("%B6", "%b6"):
                part = part.replace(enc, "")
            path.append(part)

        # first part is always empty
        self.path = path[1:]
        self.crumbpath = "/"

        self.lang = self.http.accept_languages.best or ""

    def set_client(self):
        """Determine the client address, raises InvalidRemoteAddress"""
        host = self.env.get("REMOTE_ADDR", "")
        port = self.env.get("REMOTE_PORT") or "0"
        if ":" in host:
            remote = "[%s]:%s" % (host, port)
        else:
            remote = "%s:%s" % (host, port)

        xff = self.http.headers.get("X-Forwarded-For", "")
        ip, addr = ipresolver.parse_client_ip(remote, xff,
            self.config["WEB_XFF_TRUSTED_CIDR"] or [])
        self.remote = addr
        self.set_client_ip(ip)

    # request

    def get_method(self):
        return self.method

    def is_get(self):
        return self.method == "GET"

    def is_post(self):
        return self.method == "POST"

    def get_http_host(self):
        return self.http_host

    def get_http_header(self, name):
        return self.http.headers.get(name, "")

    def get_full_path(self):
        return self.fullpath

    def get_path(self):
        return self.path

    def get_path_string(self):
        return "/".join(self.path)

    def set_path(self, path):
        self.path = path

    def get_sub_path(self):
        return self.subpath

    def set_sub_path(self, path):
        self.subpath = path

    def get_body(self):
        return self.http.get_data()

    def set_bearer_auth(self, value=True):
        self.bearer_auth = value

    # arguments

    def get_arg(self, key):
        """Value from the query string, without CSRF check"""
        return self.http.args.get(key, "")

    def get_arg_csrf(self, key):
        """Value from the query string, empty when the CSRF check fails"""
        if not self.check_csrf():
            return ""
        return self.get_arg(key)

    def check_csrf(self):
        """Validate the CSRF token of the request, the result is cached

        Failures are counted against the client address.
        """
        if self._csrf_valid is not None:
            return self._csrf_valid

        valid = False
        tok = self.get_http_header(csrf.CSRF_HEADER)
        if tok:
            valid = csrf.csrf_check(self, tok)
        else:
            tok = self.http.values.get(csrf.CSRF_TOKENNAME, "")
            if not tok:
                logger.error("Missing expected CSRF token for URL %r",
                             self.fullpath)
            else:
                valid = csrf.csrf_check(self, tok)

        # too many failures and the address is blocked
        if not valid and self.client_ip is not None:
            self.portal.iptrk.count(self.client_ip)

        self._csrf_valid = valid
        return valid

    def _form_value(self, key, docsrf):
        if not self.is_post():
            raise NotPOSTError()

        if docsrf and not self.check_csrf():
            raise InvalidCSRFError()

        if key in self.http.form:
            return self.http.form[key]

        logger.debug("Missing value for %r", key)
        raise MissingValueError()

    def form_value(self, key):
        """Value of a posted form field, CSRF checked

        Raises NotPOSTError, InvalidCSRFError or MissingValueError.
        """
        return self._form_value(key, True)

    def form_value_m(self, key):
        """All values of a posted form field, CSRF checked"""
        if not self.is_post():
            raise NotPOSTError()
        if not self.check_csrf():
            raise InvalidCSRFError()
        values = self.http.form.getlist(key)
        if not values:
            raise MissingValueError()
        return values

    def form_value_no_csrf(self, key):
        """Value of a posted form field without CSRF check

        Only for posts from outside the portal, like OAuth2 clients.
        """
        return self._form_value(key, False)

    def get_form_file(self, key, maxsize="", b64=False):
        """Contents of an uploaded file as string

        Images are shrunk to fit maxsize ("WxH") when given; b64 returns
        the contents base64 encoded.
        """
        if not self.is_post():
            raise NotPOSTError()
        upload = self.http.files.get(key)
        if upload is None:
            raise MissingValueError()

        data = upload.read()
        if maxsize:
            data = image.resize(data, maxsize)

        if b64:
            return base64.b64encode(data).decode("ascii")
        return data.decode("utf-8", "replace")

    def query_arg_set(self, q):
        """True when q is a form or query argument, in any case"""
        q = q.lower()
        for k in self.http.values.keys():
            if k.lower() == q:
                return True
        return False

    def no_subs(self):
        """Show a 404 when there are path segments left

        Returns True when it did.
        """
        if self.path and self.path[0] != "":
            root.h_error(self, 404)
            return True
        return False

    # response staging

    def set_header(self, name, value):
        self.headers.set(name, value)

    def add_header(self, name, value):
        self.headers.add(name, value)

    def set_return_code(self, rc):
        """Exit code of a command, sent as X-ReturnCode"""
        self.returncode = rc

    def set_expired(self):
        self.expires = EXPIRED_DATE
        self.set_header("Cache-Control",
                        "no-cache, no-store, max-age=0, must-revalidate")
        self.set_header("Pragma", "no-cache")

    def set_expires(self, minutes):
        self.expires = email.utils.formatdate(time.time() + minutes * 60,
                                              usegmt=True)

    def set_content_type(self, ctype):
        # HTML and markdown are always served as UTF-8
        if ctype in ("text/html", "text/markdown"):
            ctype += "; charset=utf-8"
        self.contenttype = ctype

    def set_file_name(self, fname):
        self.add_header("Content-Disposition", 'inline; filename="%s"'
                        % fname)

    def set_static_file(self, filename):
        self.staticfile = filename

    def set_raw(self, raw):
        if isinstance(raw, str):
            raw = raw.encode("utf-8")
        self.raw = raw

    def set_json(self, data):
        try:
            txt = json.dumps(data)
        except (TypeError, ValueError) as e:
            logger.error("JSON encoding failed: %s", e)
            txt = "JSON ENCODING FAILED"
        self.set_content_type("application/json")
        self.set_raw(txt)

    def json_answer(self, status, message):
        self.set_json({"Status": status, "Message": message})

    def outf(self, fmt, *args):
        self.out(fmt % args)

    def set_redirect(self, path, status):
        """Redirect to path with status, relative to the current page
        when path is a query or fragment"""
        self.set_status(status)

        if not path:
            logger.error("set_redirect() with empty path")
            raise ValueError("Redirect to an empty path")

        if path[0] in "?#":
            path = self.fullpath + path

        self.redirect = path

    def page_show(self, name, data):
        """Render template name with data when the response is flushed"""
        self.show_name = name
        self.show_data = data

    # crumbs

    def add_crumb(self, link, desc, long=""):
        if link == "" and desc != "":
            # replaces the previous one
            self.crumbs.pop()
        else:
            if link and link[0] != '?':
                link += "/"
            self.crumbpath += link

        # only the path changes without description
        if desc:
            self.crumbs.add(Link(self.crumbpath, desc, long or desc))

    def del_crumb(self):
        """Remove the last crumb, return its (link, desc, long)"""
        if not len(self.crumbs):
            logger.error("DelCrumb() on empty Crumb Path")
            return "NOCRUMB", "NOCRUMB", "NOCRUMB"

        c = self.crumbs.pop()
        last = self.crumbs.last()
        if last is None:
            self.crumbpath = "/"
        else:
            self.crumbpath = last.link
        return c.link, c.desc, c.long

    def get_crumb_path(self):
        return self.crumbpath

    def get_crumb_parts(self):
        parts = self.crumbpath.split("/")[1:]
        if parts and parts[-1] == "":
            parts = parts[:-1]
        return parts

    # menus

    def set_page_menu(self, menu):
        self.pagemenu = menu
        self.pagemenudepth = 0

    def ui_menu(self, menu):
        """Resolve the remaining path against menu and run the handler"""
        self.portal.ui_sub_menu_override(self, menu)
        self.menu_path(menu)

    def menu_path(self, menu):
        if not self.path:
            # directories end in a slash
            self.set_redirect(self.fullpath + "/", 302)
            return

        self.set_page_menu(menu)

        p = self.path[0]
        for entry in menu:
            if entry.uri != p:
                continue

            try:
                self.check_perms("MenuPath(%s)" % p, entry.perms)
            except PermissionDenied as e:
                logger.error("Menu: No %s permission for MenuPath(%s): %s",
                             perm_str(entry.perms), p, e)
                root.h_no_access(self)
                return

            if not entry.perms & PERM_NOCRUMB:
                self.add_crumb(entry.uri, entry.desc, "")

            if entry.uri and entry.uri[0] != '?':
                self.pagemenudepth += 1

            self.path = self.path[1:]

            # nothing may follow these
            if entry.perms & PERM_NOSUBS and self.no_subs():
                return

            entry.fun(self)
            return

        logger.error("Menu: Not Found")
        root.h_error(self, 404)

    def main_menu(self):
        menu = UIMenu([
            UIMenuEntry("/group", "Group", PERM_USER),
            UIMenuEntry("/user", "User", PERM_USER),
            UIMenuEntry("/system", "System", PERM_SYS_ADMIN),
            UIMenuEntry("/cli", "CLI", PERM_CLI, root.h_cli),
        ])
        self.portal.ui_main_menu_override(self, menu)
        return menu

    def page_def(self):
        """Return the data every page template needs"""
        title = ""
        ptitle = ""
        for c in self.crumbs:
            if title:
                title += " > "
            title += c.desc
            # the last crumb is the long page title
            ptitle = c.long

        version = ""
        if self.is_logged_in():
            version = __version__

        if self.pagemenu is None:
            submenu = LinkCol()
        else:
            submenu = self.pagemenu.to_link_col(self, self.pagemenudepth)

        sysname = self.config["SYSNAME"]
        return {
            "url": self.fullpath,
            "title": title + " - " + sysname,
            "page_title": ptitle,
            "menu": self.main_menu().to_link_col(self, 0),
            "submenu": submenu,
            "crumbs": self.crumbs,
            "the_user": self.user,
            "noindex": self.config["NOINDEX"],
            "css": list(self.config["CSS"] or []),
            "javascript": list(self.config["JAVASCRIPT"] or []),
            "sysname": sysname,
            "version": version,
            "public_url": self.config["PUBLIC_URL"],
            "render_stamp": time.strftime(self.config["TIMEFORMAT"],
                                          time.gmtime()),
            "ui": self,
        }

    # tokens

    def init_token(self):
        """Log in with the token of the request, if any

        The token is taken from an "Authorization: Bearer" header, the
        session cookie or the access_token argument, in that order.
        """
        tok = ""
        self.bearer_auth = False

        ah = self.get_http_header("Authorization")
        if len(ah) > 6 and ah[:6].upper() == "BEARER":
            self.bearer_auth = True
            tok = ah[7:]

        if not tok:
            tok = self.http.cookies.get(self.cookie_name(), "")

        if not tok:
            tok = self.get_arg("access_token")

        self.token_recv = tok
        if not tok:
            return

        try:
            self.token_exp = self.login_token(tok)
        except InvalidToken as e:
            logger.debug("LoginToken failed: %s", e)
            return

        # everything else is silently ignored
        if self.get_arg("xtra") == "swapadmin":
            self.swap_sysadmin()

    def cookie_name(self):
        return self.config["WEB_COOKIE_NAME"].lower()

    def _cookie(self, value, **kw):
        return dump_cookie(self.cookie_name(), value, path="/",
                           httponly=True,
                           secure=self.config["WEB_COOKIE_SECURE"], **kw)

    def set_token(self, headers):
        """Send a new, refreshed or revoked session token"""
        realm = 'Bearer realm="%s"' % self.config["SYSNAME"]

        if self.is_logged_in():
            if not self.token or self.token_exp:
                logger.debug("Generating new token for logged in user")
                try:
                    self.new_token()
                except (LoginError, jwt.exceptions.PyJWTError) as e:
                    logger.error("setToken - No Token: %s", e)
                    return

            if self.token != self.token_recv:
                if self.bearer_auth:
                    headers.set("WWW-Authenticate", '%s access_token="%s"'
                                % (realm, self.token))
                else:
                    headers.add("Set-Cookie", self._cookie(self.token))

        elif self.token or self.token_recv:
            logger.debug("Not logged in, revoking token")
            if self.bearer_auth:
                headers.set("WWW-Authenticate", realm)
            else:
                headers.add("Set-Cookie", self._cookie("invalid",
                            expires=EXPIRED_EPOCH, max_age=0))

    # output

    def _socket_op(self, call, *args, **kwargs):
        """Execute socket-related operation, catch common network errors

        Returns False when the client went away.
        """
        try:
            call(*args, **kwargs)
        except socket.error as err:
            if getattr(err, 'errno', None) not in self.IGNORE_NET_ERRORS:
                raise
            logger.debug("Client disconnected: %s", err)
            self.disconnected()
            return False
        return True

    def start_response(self, headers, code):
        self._socket_op(self.request.start_response,
                        list(headers.to_wsgi_list()), code)
        self.headers_done = True

    def write(self, content):
        if isinstance(content, str):
            content = content.encode("utf-8")
        if self.method == "HEAD" or not content:
            return True
        if self.is_disconnected():
            return False
        return self._socket_op(self.request.wfile.write, content)

    def log_access(self):
        if not self.config["LOGGING_ACCESS_LOG"]:
            return

        username = ""
        if self.is_logged_in():
            username = self.user.username

        now = time.time()
        self.portal.accesslog.log({
            "epoch": int(now),
            "timestamp": time.strftime(self.config["TIMEFORMAT"],
                                       time.gmtime(now)),
            "username": username,
            "nodename": self.config["NODENAME"],
            "ip": self.client_ip is not None and str(self.client_ip) or "",
            "xff": self.remote,
            "method": self.method,
            "host": self.http_host,
            "path": self.fullpath,
            "args": self.env.get("QUERY_STRING", ""),
            "template": self.show_name,
            "staticfile": self.staticfile,
        })

    def flush(self):
        """Send the staged response, once"""
        if self.hasflushed:
            logger.error("Flushed again, programmer mistake!")
            return
        self.hasflushed = True

        self.log_access()

        # never cache what is generated
        if not self.staticfile and not self.expires:
            self.set_expired()

        headers = Headers(self.headers)

        headers.add("X-Content-Type-Options", "nosniff")
        headers.add("X-Frame-Options", "SAMEORIGIN")
        headers.add("X-XSS-Protection", "1; mode=block")
        headers.add("Content-Security-Policy", self.config["WEB_CSP"])

        if self.returncode:
            headers.add("X-ReturnCode", str(self.returncode))

        if self.contenttype:
            headers.set("Content-Type", self.contenttype)
        elif not self.staticfile:
            headers.set("Content-Type", DEFAULT_CONTENT_TYPE)

        if self.expires:
            headers.set("Expires", self.expires)

        if self.staticfile:
            self.serve_static_file(headers)
            return

        self.set_token(headers)

        if self.redirect:
            headers.set("Location", self.redirect)
            self.start_response(headers, self.status)
            self.write('Redirecting to <a href="%s">%s</a>' % (
                self.redirect, self.redirect))
            return

        if self.status == 401:
            headers.set("WWW-Authenticate", 'Bearer realm="%s"'
                        % self.config["SYSNAME"])

        self.start_response(headers, self.status)

        o = self.buffered()
        if o:
            self.write(o)

        if self.raw:
            self.write(self.raw)

        self.page_render()

    def page_render(self):
        if not self.show_name:
            return

        try:
            html = self.templates.render(self.show_name, self.show_data)
        except jinja2.TemplateError as e:
            logger.error("Rendering template %s failed: %s", self.show_name,
                         e)
            self.set_page_menu(None)
            p = self.page_def()
            p["messages"] = ["(internal error: Template rendering failed)"]
            html = self.templates.render("misc/error", p)

        if not self.write(html):
            logger.debug("Client disconnected during render of %s",
                         self.show_name)

    def _send_error(self, headers, code, message):
        headers.set("Content-Type", "text/plain; charset=utf-8")
        self.start_response(headers, code)
        self.write(message)

    def serve_static_file(self, headers):
        """Stream the staged static file, it must live in the webroot"""
        if self.staticfile.endswith("/"):
            self._send_error(headers, 403, "Forbidden")
            return

        # ensure the load doesn't try to poke outside of the webroot
        webroot = os.path.normpath(self.config["WEBROOT"])
        filename = os.path.normpath(self.staticfile)
        if not filename.startswith(webroot + os.sep) or \
                not os.path.isfile(filename):
            self._send_error(headers, 404, "Not Found")
            return

        stat_info = os.stat(filename)
        lmt = stat_info[stat.ST_MTIME]

        if "Content-Type" not in headers:
            mime_type = mimetypes.guess_type(filename)[0]
            if not mime_type:
                if filename.endswith('.css'):
                    mime_type = 'text/css'
                else:
                    mime_type = 'text/plain'
            headers.set("Content-Type", mime_type)
        headers.set("Last-Modified", email.utils.formatdate(lmt, usegmt=True))

        ims = self.get_http_header("If-Modified-Since")
        if ims:
            ims = email.utils.parsedate(ims)
            if ims is not None and time.gmtime(lmt)[:6] <= ims[:6]:
                self.start_response(headers, 304)
                return

        self.write_file(headers, filename, stat_info)

    def write_file(self, headers, filename, stat_info):
        """Send the contents of 'filename' to the user."""
        length = stat_info[stat.ST_SIZE]

        # Compute the entity tag, in a format similar to that
        # used by Apache.
        etag = '"%x-%x-%x"' % (stat_info[stat.ST_INO], length,
                               stat_info[stat.ST_MTIME])
        headers.set("ETag", etag)
        headers.set("Content-Length", str(length))
        self.start_response(headers, 200)

        if self.method == "HEAD":
            return

        with open(filename, 'rb') as f:
            self.write(f.read())

# vim: set filetype=python sts=4 sw=4 et si :
