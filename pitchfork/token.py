"""Signed tokens for sessions, CSRF protection and OAuth2.

Tokens are JSON Web Tokens signed with HS256.  The token type is stored
as audience, the system name as issuer, so a CSRF token can never be
used as a session token and vice versa.

Tokens that were revoked before their expiry (logout) are remembered in
an invalidation list until they expire.
"""
__docformat__ = 'restructuredtext'

import collections
import logging
import threading
import time

import jwt

from pitchfork.exceptions import InvalidToken, LoginError

logger = logging.getLogger('pitchfork.token')

# Audience of session tokens
SESSION_TOKEN = "websession"

# Memory cached list of at most this many token lookups
INVALID_CACHE_MAX = 512

# Secrets shorter than this disable tokens
SECRET_MIN_LENGTH = 32

# Registered claims; everything else in a payload is an application claim
REGISTERED_CLAIMS = ("aud", "sub", "iat", "exp", "iss", "nbf", "jti")


class InvalidTokenStore:
    """Tokens revoked before their expiry, keyed by the token string

    This is the authoritative list; it keeps each token until it
    expires.  Back it with a database by overriding the three methods.
    """

    def __init__(self):
        self.tokens = {}

    def add(self, tok, expires):
        self.tokens.setdefault(tok, expires)

    def contains(self, tok):
        return tok in self.tokens

    def expire(self, now):
        for tok, expires in list(self.tokens.items()):
            if expires < now:
                del self.tokens[tok]


class InvalidTokenCache:
    """LRU of recent lookups in front of an InvalidTokenStore

    Entries map the token to (isvalid, expiration).
    """

    def __init__(self, store=None, maxsize=INVALID_CACHE_MAX):
        if store is None:
            store = InvalidTokenStore()
        self.store = store
        self.maxsize = maxsize
        self.cache = collections.OrderedDict()
        self.lock = threading.Lock()
        self._timer = None
        self._stop = threading.Event()

    def _cache_add(self, tok, isvalid, expiration):
        # lock must be held
        self.cache[tok] = (isvalid, expiration)
        self.cache.move_to_end(tok, last=False)
        if len(self.cache) > self.maxsize:
            # drop the least recently used one
            self.cache.popitem(last=True)

    def invalidate(self, tok, expiration):
        """Revoke tok, which would otherwise be valid until expiration"""
        with self.lock:
            self.cache.pop(tok, None)
            self.store.add(tok, expiration)
            self._cache_add(tok, False, expiration)

    def is_invalidated(self, tok, expiration):
        with self.lock:
            if tok in self.cache:
                self.cache.move_to_end(tok, last=False)
                return not self.cache[tok][0]
            invalid = self.store.contains(tok)
            self._cache_add(tok, not invalid, expiration)
            return invalid

    def expire(self, now=None):
        """Forget about tokens that expired on their own"""
        if now is None:
            now = time.time()
        with self.lock:
            self.store.expire(now)
            for tok, (isvalid, expiration) in list(self.cache.items()):
                if expiration < now:
                    del self.cache[tok]

    def __len__(self):
        return len(self.cache)

    def __contains__(self, tok):
        return tok in self.cache

    def _run(self, interval):
        while not self._stop.wait(interval):
            try:
                self.expire()
            except Exception:
                logger.exception("Expiring invalidated tokens failed")

    def start(self, interval):
        """Start a thread expiring entries every interval seconds"""
        if self._timer is not None:
            return
        self._stop.clear()
        self._timer = threading.Thread(target=self._run, args=(interval,),
                                       name="pitchfork-jwtinv", daemon=True)
        self._timer.start()

    def stop(self):
        if self._timer is None:
            return
        self._stop.set()
        self._timer.join()
        self._timer = None


class TokenService:
    """Create and verify the tokens of one Pitchfork instance"""

    algorithm = "HS256"

    def __init__(self, config, invalid=None):
        self.config = config
        if invalid is None:
            invalid = InvalidTokenCache()
        self.invalid = invalid

    @property
    def secret(self):
        return self.config["JWT_SECRET"]

    @property
    def issuer(self):
        return self.config["SYSNAME"]

    def new(self, ttype, subject, minutes, claims=None):
        """Return a signed token of type ttype for subject

        The token expires after the given number of minutes.  Extra
        claims are carried in the payload next to the registered ones.
        """
        if len(self.secret) < SECRET_MIN_LENGTH:
            raise LoginError("Token support disabled by admin")
        now = int(time.time())
        payload = dict(claims or {})
        for name in REGISTERED_CLAIMS:
            payload.pop(name, None)
        payload.update({
            "aud": ttype,
            "sub": subject,
            "iat": now,
            "exp": now + int(minutes * 60),
            "iss": self.issuer,
        })
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def parse(self, tok, ttype):
        """Verify tok and return (claims, expsoon)

        claims is the decoded payload.  expsoon is True when the token
        expires within JWT_TOKEN_REFRESH_MINUTES.  Any failure raises
        InvalidToken.
        """
        if len(self.secret) < SECRET_MIN_LENGTH:
            raise InvalidToken("Token support disabled by admin")
        try:
            claims = jwt.decode(tok, self.secret, algorithms=[self.algorithm],
                                audience=ttype, issuer=self.issuer,
                                options={"require": ["exp", "iat", "aud"]})
        except jwt.exceptions.ExpiredSignatureError:
            raise InvalidToken("Token expired")
        except jwt.exceptions.ImmatureSignatureError:
            raise InvalidToken("Token not active yet")
        except jwt.exceptions.InvalidAudienceError:
            raise InvalidToken("Token is not a %s token" % ttype)
        except jwt.exceptions.InvalidSignatureError:
            raise InvalidToken("Token is invalid")
        except jwt.exceptions.DecodeError:
            raise InvalidToken("Token does not even look like a token")
        except jwt.exceptions.InvalidTokenError:
            raise InvalidToken("Token is invalid")

        if self.invalid.is_invalidated(tok, claims["exp"]):
            raise InvalidToken("Token is invalid")

        then = time.time() + self.config["JWT_TOKEN_REFRESH_MINUTES"] * 60
        return claims, then > claims["exp"]

    def invalidate(self, tok, claims):
        self.invalid.invalidate(tok, claims.get("exp", 0))


def app_claims(claims):
    """Return the non-registered claims of a decoded payload"""
    return {k: v for k, v in claims.items() if k not in REGISTERED_CLAIMS}

# vim: set filetype=python sts=4 sw=4 et si :
