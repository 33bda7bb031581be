import time
import unittest

import jwt

from pitchfork import configuration
from pitchfork.exceptions import InvalidToken, LoginError
from pitchfork.token import (INVALID_CACHE_MAX, SESSION_TOKEN,
                             InvalidTokenCache, InvalidTokenStore,
                             TokenService, app_claims)

from .portal_base import SECRET


def makeConfig(**kw):
    settings = {'JWT_SECRET': SECRET, 'SYSNAME': 'Testportal'}
    settings.update(kw)
    return configuration.CoreConfig(settings=settings)


class TokenServiceTestCase(unittest.TestCase):
    def setUp(self):
        self.config = makeConfig()
        self.tokens = TokenService(self.config)

    def testRoundTrip(self):
        tok = self.tokens.new(SESSION_TOKEN, 'alice', 20,
                              {'userdesc': 'Alice'})
        claims, expsoon = self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(claims['sub'], 'alice')
        self.assertEqual(claims['aud'], SESSION_TOKEN)
        self.assertEqual(claims['iss'], 'Testportal')
        self.assertEqual(claims['userdesc'], 'Alice')
        self.assertEqual(claims['exp'] - claims['iat'], 20 * 60)
        self.assertFalse(expsoon)

    def testRegisteredClaimsNotOverridden(self):
        tok = self.tokens.new(SESSION_TOKEN, 'alice', 20,
                              {'sub': 'mallory', 'exp': 1})
        claims, expsoon = self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(claims['sub'], 'alice')
        self.assertEqual(app_claims(claims), {})

    def testExpiresSoon(self):
        # refresh window is 10 minutes
        tok = self.tokens.new(SESSION_TOKEN, 'alice', 5)
        claims, expsoon = self.tokens.parse(tok, SESSION_TOKEN)
        self.assertTrue(expsoon)

    def testExpired(self):
        payload = {'aud': SESSION_TOKEN, 'sub': 'alice', 'iss': 'Testportal',
                   'iat': int(time.time()) - 120,
                   'exp': int(time.time()) - 60}
        tok = jwt.encode(payload, SECRET, algorithm='HS256')
        with self.assertRaises(InvalidToken) as cm:
            self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(str(cm.exception), 'Token expired')

    def testWrongAudience(self):
        tok = self.tokens.new('pfCSRF', 'alice', 20)
        with self.assertRaises(InvalidToken) as cm:
            self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(str(cm.exception),
                         'Token is not a websession token')

    def testGarbage(self):
        with self.assertRaises(InvalidToken) as cm:
            self.tokens.parse('not-a-token', SESSION_TOKEN)
        self.assertEqual(str(cm.exception),
                         'Token does not even look like a token')

    def testWrongSecret(self):
        other = TokenService(makeConfig(JWT_SECRET='x' * 40))
        tok = other.new(SESSION_TOKEN, 'alice', 20)
        with self.assertRaises(InvalidToken) as cm:
            self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(str(cm.exception), 'Token is invalid')

    def testWrongIssuer(self):
        other = TokenService(makeConfig(SYSNAME='Other'))
        tok = other.new(SESSION_TOKEN, 'alice', 20)
        self.assertRaises(InvalidToken, self.tokens.parse, tok,
                          SESSION_TOKEN)

    def testShortSecretDisablesTokens(self):
        tokens = TokenService(makeConfig(JWT_SECRET='short'))
        self.assertRaises(LoginError, tokens.new, SESSION_TOKEN, 'alice', 20)
        tok = self.tokens.new(SESSION_TOKEN, 'alice', 20)
        self.assertRaises(InvalidToken, tokens.parse, tok, SESSION_TOKEN)

    def testGeneratedSecret(self):
        tokens = TokenService(makeConfig(JWT_SECRET=''))
        tok = tokens.new(SESSION_TOKEN, 'alice', 20)
        claims, expsoon = tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(claims['sub'], 'alice')
        self.assertEqual(tokens.secret, tokens.secret)

    def testInvalidate(self):
        tok = self.tokens.new(SESSION_TOKEN, 'alice', 20)
        claims, expsoon = self.tokens.parse(tok, SESSION_TOKEN)
        self.tokens.invalidate(tok, claims)
        with self.assertRaises(InvalidToken) as cm:
            self.tokens.parse(tok, SESSION_TOKEN)
        self.assertEqual(str(cm.exception), 'Token is invalid')

        # other tokens are not affected
        other = self.tokens.new(SESSION_TOKEN, 'alice', 19)
        self.tokens.parse(other, SESSION_TOKEN)


class InvalidTokenCacheTestCase(unittest.TestCase):
    def testLookupIsCached(self):
        cache = InvalidTokenCache()
        now = time.time()
        self.assertFalse(cache.is_invalidated('a', now + 60))
        self.assertIn('a', cache)
        cache.invalidate('a', now + 60)
        self.assertTrue(cache.is_invalidated('a', now + 60))

    def testStoreIsAuthoritative(self):
        store = InvalidTokenStore()
        store.add('a', time.time() + 60)
        cache = InvalidTokenCache(store)
        self.assertTrue(cache.is_invalidated('a', time.time() + 60))

    def testLRUBound(self):
        cache = InvalidTokenCache(maxsize=3)
        exp = time.time() + 60
        for tok in 'abcd':
            cache.is_invalidated(tok, exp)
        self.assertEqual(len(cache), 3)
        self.assertNotIn('a', cache)

        # a lookup makes an entry recent again
        cache.is_invalidated('b', exp)
        cache.is_invalidated('e', exp)
        self.assertIn('b', cache)
        self.assertNotIn('c', cache)

    def testDefaultSize(self):
        self.assertEqual(InvalidTokenCache().maxsize, INVALID_CACHE_MAX)
        self.assertEqual(INVALID_CACHE_MAX, 512)

    def testExpire(self):
        cache = InvalidTokenCache()
        now = time.time()
        cache.invalidate('old', now - 10)
        cache.invalidate('new', now + 600)
        cache.expire(now)
        self.assertNotIn('old', cache)
        self.assertNotIn('old', cache.store.tokens)
        self.assertIn('new', cache)
        self.assertTrue(cache.is_invalidated('new', now + 600))

    def testStartStop(self):
        cache = InvalidTokenCache()
        cache.start(0.01)
        cache.invalidate('old', time.time() - 10)
        for i in range(200):
            if 'old' not in cache:
                break
            time.sleep(0.01)
        cache.stop()
        self.assertNotIn('old', cache)
        self.assertIsNone(cache._timer)

# vim: set filetype=python sts=4 sw=4 et si :
