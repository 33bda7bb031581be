"""OAuth 2.0 endpoints: /oauth2/authorize, /oauth2/token, /oauth2/info.

Parameters are accepted from the query string or from a form posted by
the client application, the latter without CSRF check as those posts
come from outside the portal.
"""
__docformat__ = 'restructuredtext'

import logging
import time
import urllib.parse

import jwt

from pitchfork import oauth2
from pitchfork.cgi import root
from pitchfork.cgi.exceptions import FormError
from pitchfork.cgi.menu import UIMenu, UIMenuEntry
from pitchfork.exceptions import InvalidToken, LoginError
from pitchfork.security import PERM_HIDDEN, PERM_NOCRUMB, PERM_NONE

logger = logging.getLogger('pitchfork.cgi')


def oauth2_get(cui, errs, name):
    """Return parameter name, noting in errs when it is missing or empty"""
    missing = False
    val = cui.get_arg(name)
    if val == "":
        try:
            val = cui.form_value_no_csrf(name)
        except FormError:
            missing = True

    val = val.strip()
    if missing:
        errs.append("Missing " + name)
    elif val == "":
        errs.append("Empty " + name)
    return val


def check_redir(redir, errs):
    """Return (split URL, query pairs) of redir"""
    try:
        u = urllib.parse.urlsplit(redir)
        q = urllib.parse.parse_qsl(u.query, keep_blank_values=True)
    except ValueError as e:
        errs.append("Redirect URL could not be properly parsed: %s" % e)
        return None, []
    return u, q


def authorize(cui):
    errs = []

    o = oauth2.OAuthAuth()
    o.rtype = oauth2_get(cui, errs, "response_type")
    o.client_id = oauth2_get(cui, errs, "client_id")
    o.redirect = oauth2_get(cui, errs, "redirect_uri")
    o.scope = oauth2_get(cui, errs, "scope")

    # empty ones are reported by oauth2_get()
    if o.rtype not in ("code", "token", ""):
        errs.append("Not supported or unknown response_type " + o.rtype)

    u, q = check_redir(o.redirect, errs)

    if errs:
        root.h_errmsgs(cui, errs)
        return

    # they have to log in first, the login page comes back here
    if not cui.is_logged_in():
        root.h_login(cui)
        return

    if cui.is_post():
        try:
            button = cui.form_value("button")
        except FormError:
            root.h_errmsgs(cui, ["No button was pressed"])
            return

        if button == "Authorize":
            try:
                tok = oauth2.auth_token_new(cui, o)
            except (LoginError, jwt.exceptions.PyJWTError) as e:
                logger.error("OAuth2 auth token: %s", e)
                root.h_errmsgs(cui, ["Could not generate Token"])
                return

            if o.rtype == "code":
                q.append(("code", tok))
            else:
                q.append(("access_token", tok))
            url = urllib.parse.urlunsplit(u._replace(
                query=urllib.parse.urlencode(q)))
            cui.set_redirect(url, 302)
            return

        if button == "Deny":
            cui.set_redirect(o.redirect, 302)
            return

        # not a valid button, try again

    p = cui.page_def()
    p["oauth"] = o
    cui.page_show("oauth2/authorize", p)


def token(cui):
    errs = []

    client_id = oauth2_get(cui, errs, "client_id")
    grant_type = oauth2_get(cui, errs, "grant_type")
    redirect = oauth2_get(cui, errs, "redirect_uri")
    code = oauth2_get(cui, errs, "code")

    # the code authenticates, there is no client_secret
    check_redir(redirect, errs)

    claims = {}
    try:
        claims = oauth2.auth_token_check(cui.portal.tokens, code)
    except InvalidToken as e:
        errs.append(str(e))

    if errs:
        root.h_errmsgs(cui, errs)
        return

    if claims.get("oa_client_id") != client_id:
        root.h_errmsgs(cui, ["Mismatching client_id"])
        return

    scope = claims.get("oa_scope", "")

    if grant_type != "authorization_code":
        root.h_errmsgs(cui, ["Not supported or unknown grant_type "
                             + grant_type])
        return

    try:
        tok = oauth2.access_token_new(cui, client_id, scope,
                                      claims.get("sub"))
    except (LoginError, jwt.exceptions.PyJWTError) as e:
        logger.error("OAuth2 access token: %s", e)
        root.h_errmsgs(cui, ["Could not generate Token"])
        return

    cui.set_json({
        "access_token": tok,
        "token_type": "bearer",
        "scope": scope,
        "info": {"name": cui.config["SYSNAME"]},
    })


def info(cui):
    errs = []

    code = oauth2_get(cui, errs, "code")

    if errs:
        root.h_errmsgs(cui, errs)
        return

    try:
        claims = oauth2.auth_token_check(cui.portal.tokens, code)
    except InvalidToken as e:
        root.h_errmsgs(cui, [str(e)])
        return

    cui.set_json({
        "client_id": claims.get("oa_client_id", ""),
        "access_token": code,
        "token_type": "bearer",
        "scope": claims.get("oa_scope", ""),
        "expires_in": int(claims["exp"] - time.time()),
    })


def index(cui):
    cui.page_show("oauth2/index", cui.page_def())


def h_oauth(cui):
    cui.ui_menu(UIMenu([
        UIMenuEntry("", "OAuth2 / OpenID Connect Information", PERM_NONE,
                    index),
        UIMenuEntry("authorize", "Authorize",
                    PERM_NONE | PERM_HIDDEN | PERM_NOCRUMB, authorize),
        UIMenuEntry("token", "Token", PERM_NONE | PERM_HIDDEN | PERM_NOCRUMB,
                    token),
        UIMenuEntry("info", "Info", PERM_NONE | PERM_HIDDEN | PERM_NOCRUMB,
                    info),
    ]))

# vim: set filetype=python sts=4 sw=4 et si :
