"""Protection against cross site request forgery.

Every form rendered by the portal carries a hidden ``pfCSRF`` input: a
signed token naming the method, the host, the path prefix the form may
be posted to and the user it was rendered for.  The token is stateless,
checking it needs nothing but the signing secret.

Access methods of the client:

``client.get_arg()``
    value from the query string, no CSRF check
``client.cmd()`` / ``client.cmd_out()``
    values given by the caller, no CSRF check
``client.form_value()``
    values from a POSTed form, full CSRF check
"""
__docformat__ = 'restructuredtext'

import json
import logging

import jwt
from markupsafe import Markup, escape

from pitchfork.exceptions import InvalidToken, LoginError

logger = logging.getLogger('pitchfork.cgi')

# Name of the form field and token type (audience) used for CSRF
CSRF_TOKENNAME = "pfCSRF"

# Header an XMLHttpRequest may carry the token in instead
CSRF_HEADER = "X-XSRF-TOKEN"


def token_path(fullpath, url):
    """Return the path prefix a form at fullpath posting to url covers

    The last component of fullpath is dropped unless it ends in '/'.
    An empty url or a query ('?...') keeps that directory, a relative
    url is appended to it and an absolute one replaces it.
    """
    path = fullpath
    if path and not path.endswith('/'):
        i = path.rfind('/')
        if i != -1:
            path = path[:i + 1]

    if url == "" or url.startswith('?'):
        pass
    elif not url.startswith('/'):
        path += url
    else:
        path = url
    return path


def csrf_token(tokens, method, host, fullpath, url, username):
    """Return (token, claims as JSON) for a form

    tokens is the portal's TokenService.  An empty token is returned
    when signing fails.
    """
    if not method:
        method = "post"

    claims = {
        "method": method.lower(),
        "host": host,
        "path": token_path(fullpath, url),
    }

    try:
        tok = tokens.new(CSRF_TOKENNAME, username,
                         tokens.config["JWT_CSRF_EXPIRATION_MINUTES"], claims)
    except (LoginError, jwt.exceptions.PyJWTError, TypeError,
            ValueError) as e:
        logger.error("Token Signing failed: %s", e)
        return "", ""
    return tok, json.dumps(claims)


def _username(client):
    if client.is_logged_in():
        return client.user.username
    return ""


def csrf_input(client, url, method):
    """Return the hidden input(s) carrying the CSRF token"""
    tok, claims = csrf_token(client.portal.tokens, method,
                             client.get_http_host(), client.get_full_path(),
                             url, _username(client))

    o = '<input type="hidden" name="%s" value="%s" />\n' % (CSRF_TOKENNAME,
                                                            tok)

    # the decoded claims save a manual decode while debugging
    if client.config["DEBUG"]:
        o += '<input type="hidden" name="%sdebug" value="%s" />\n' % (
            CSRF_TOKENNAME, escape(claims))
    return o


def csrf_form_param(client, url, params):
    """Open a POST form with extra attributes params, CSRF token included"""
    method = "post"

    o = "<form"
    if params:
        o += " " + params
    o += ' method="%s"' % method
    if url:
        o += ' action="%s" ' % escape(url)
    o += ">\n"
    o += csrf_input(client, url, method)
    return Markup(o)


def csrf_form(client, url):
    """Open a styled POST form, CSRF token included"""
    return csrf_form_param(client, url, 'class="styled_form"')


def csrf_check(client, tok):
    """Return True when tok is a CSRF token valid for this request"""
    try:
        claims, expsoon = client.portal.tokens.parse(tok, CSRF_TOKENNAME)
    except InvalidToken as e:
        logger.error("CSRF check failed: token:%r, error:%s", tok, e)
        return False

    # anonymous users get tokens with an empty subject
    username = _username(client)
    subject = claims.get("sub") or ""
    if subject != username:
        logger.error("CSRF check failed: wrong user, %r (token) vs %r "
                     "(provided)", subject, username)
        return False

    httphost = client.get_http_host()
    if claims.get("host") != httphost:
        logger.error("CSRF check failed: wrong host, %r (token) vs %r "
                     "(provided)", claims.get("host"), httphost)
        return False

    path = claims.get("path") or ""
    url = client.get_full_path()[:len(path)]
    if path != url:
        logger.error("CSRF check failed: wrong path, %r (token) vs %r "
                     "(provided)", path, url)
        return False

    return True

# vim: set filetype=python sts=4 sw=4 et si :
