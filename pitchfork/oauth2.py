"""OAuth 2.0 tokens (RFC 6749).

An authorization code is a short lived token naming the client, the
scope, the response type and the redirect URL the user agreed to; the
token endpoint exchanges it for an access token.
"""
__docformat__ = 'restructuredtext'

from pitchfork.cgi.form import Record, String, Submit
from pitchfork.exceptions import LoginError

# Token types (audiences)
AUTH_TOKEN = "oauth_auth"
ACCESS_TOKEN = "oauth_access"

# Minutes an authorization code is valid
AUTH_TOKEN_MINUTES = 1


class OAuthAuth(Record):
    """An authorization request, shown to the user for approval"""

    client_id = String(label="Client ID", pfset="nobody", pfget="none")
    scope = String(label="Scope", pfset="nobody", pfget="none")
    rtype = String(label="Request Type", pfset="nobody", pfget="none")
    redirect = String(label="Redirect URL", pfset="nobody", pfget="none")
    auth = Submit(label="Authorize")
    deny = Submit(label="Deny", htmlclass="deny")


def _claims(client_id, scope, rtype="", redirect=""):
    claims = {"oa_client_id": client_id, "oa_scope": scope}
    if rtype:
        claims["oa_rtype"] = rtype
    if redirect:
        claims["oa_redirect"] = redirect
    return claims


def auth_token_new(ctx, o):
    """Return an authorization code for request o (an OAuthAuth)"""
    if not ctx.is_logged_in():
        raise LoginError("Not authenticated")

    return ctx.portal.tokens.new(AUTH_TOKEN, ctx.user.username,
        AUTH_TOKEN_MINUTES,
        _claims(o.client_id, o.scope, o.rtype, o.redirect))


def auth_token_check(tokens, tok):
    """Return the claims of authorization code tok

    Raises InvalidToken.
    """
    claims, expsoon = tokens.parse(tok, AUTH_TOKEN)
    return claims


def access_token_new(ctx, client_id, scope, username=None):
    """Return an access token for username, the caller by default"""
    if username is None:
        if not ctx.is_logged_in():
            raise LoginError("Not authenticated")
        username = ctx.user.username

    return ctx.portal.tokens.new(ACCESS_TOKEN, username,
        ctx.config["JWT_TOKEN_EXPIRATION_MINUTES"],
        _claims(client_id, scope))

# vim: set filetype=python sts=4 sw=4 et si :
