import json
import unittest
import urllib.parse

from pitchfork import oauth2
from pitchfork.context import Context
from pitchfork.exceptions import InvalidToken, LoginError

from .portal_base import WebTestCase, sessionToken, setupPortal

REDIRECT = 'https://app.example/cb?x=1'

AUTH_ARGS = {
    'response_type': 'code',
    'client_id': 'app',
    'redirect_uri': REDIRECT,
    'scope': 'profile',
}


class TokenTestCase(unittest.TestCase):
    def setUp(self):
        self.portal = setupPortal()
        self.ctx = Context(self.portal)

    def request(self):
        return oauth2.OAuthAuth(client_id='app', scope='profile',
                                rtype='code', redirect=REDIRECT)

    def testNotLoggedIn(self):
        self.assertRaises(LoginError, oauth2.auth_token_new, self.ctx,
                          self.request())
        self.assertRaises(LoginError, oauth2.access_token_new, self.ctx,
                          'app', 'profile')

    def testAuthToken(self):
        self.ctx.login('alice', 'alice-pw')
        code = oauth2.auth_token_new(self.ctx, self.request())
        claims = oauth2.auth_token_check(self.portal.tokens, code)
        self.assertEqual(claims['sub'], 'alice')
        self.assertEqual(claims['oa_client_id'], 'app')
        self.assertEqual(claims['oa_scope'], 'profile')
        self.assertEqual(claims['oa_rtype'], 'code')
        self.assertEqual(claims['oa_redirect'], REDIRECT)
        self.assertTrue(claims['exp'] - claims['iat'] <= 60)

    def testAccessTokenIsNoCode(self):
        self.ctx.login('alice', 'alice-pw')
        tok = oauth2.access_token_new(self.ctx, 'app', 'profile')
        self.assertRaises(InvalidToken, oauth2.auth_token_check,
                          self.portal.tokens, tok)
        claims, expsoon = self.portal.tokens.parse(tok, oauth2.ACCESS_TOKEN)
        self.assertEqual(claims['sub'], 'alice')
        self.assertNotIn('oa_rtype', claims)


class FlowTestCase(WebTestCase):
    def setUp(self):
        WebTestCase.setUp(self)
        self.session = sessionToken(self.portal, 'alice')

    def code(self):
        ctx = Context(self.portal)
        ctx.login('alice', 'alice-pw')
        return oauth2.auth_token_new(ctx, oauth2.OAuthAuth(
            client_id='app', scope='profile', rtype='code',
            redirect=REDIRECT))

    def testIndex(self):
        r = self.request('/oauth2/')
        self.assertEqual(r.code, 200)
        self.assertIn('http://127.0.0.1:8333/oauth2/token/', r.text)

    def testDisabled(self):
        self.portal.config['WEB_ENABLE_OAUTH'] = 'no'
        self.assertEqual(self.request('/oauth2/').code, 401)

    def testMissingArguments(self):
        r = self.request('/oauth2/authorize/')
        self.assertEqual(r.code, 200)
        for name in ('response_type', 'client_id', 'redirect_uri', 'scope'):
            self.assertIn('Missing ' + name, r.text)

    def testUnknownResponseType(self):
        args = dict(AUTH_ARGS, response_type='bogus')
        r = self.request('/oauth2/authorize/', query_string=args)
        self.assertIn('Not supported or unknown response_type bogus',
                      r.text)

    def testAuthorizeNeedsLogin(self):
        r = self.request('/oauth2/authorize/', query_string=AUTH_ARGS)
        self.assertEqual(r.code, 401)
        self.assertIn('name="username"', r.text)
        self.assertIn('value="/oauth2/authorize/?', r.text)

    def testAuthorizePage(self):
        r = self.request('/oauth2/authorize/', query_string=AUTH_ARGS,
                         cookie=self.session)
        self.assertEqual(r.code, 200)
        self.assertIn('value="app"', r.text)
        self.assertIn('value="profile"', r.text)
        self.assertIn('name="button" value="Authorize"', r.text)
        self.assertIn('name="button" value="Deny"', r.text)

    def authorize(self, button):
        return self.request('/oauth2/authorize/', 'POST',
                            query_string=AUTH_ARGS, cookie=self.session,
                            data={'button': button,
                                  'pfCSRF': self.csrfToken(
                                      '/oauth2/authorize/', 'alice')})

    def testAuthorize(self):
        r = self.authorize('Authorize')
        self.assertEqual(r.code, 302)
        u = urllib.parse.urlsplit(r.header('Location'))
        self.assertEqual((u.scheme, u.netloc, u.path),
                         ('https', 'app.example', '/cb'))
        q = dict(urllib.parse.parse_qsl(u.query))
        self.assertEqual(q['x'], '1')
        claims = oauth2.auth_token_check(self.portal.tokens, q['code'])
        self.assertEqual(claims['sub'], 'alice')

    def testImplicit(self):
        args = dict(AUTH_ARGS, response_type='token')
        r = self.request('/oauth2/authorize/', 'POST', query_string=args,
                         cookie=self.session,
                         data={'button': 'Authorize',
                               'pfCSRF': self.csrfToken(
                                   '/oauth2/authorize/', 'alice')})
        self.assertEqual(r.code, 302)
        self.assertIn('access_token=', r.header('Location'))

    def testDeny(self):
        r = self.authorize('Deny')
        self.assertEqual(r.code, 302)
        self.assertEqual(r.header('Location'), REDIRECT)

    def testOtherButton(self):
        r = self.authorize('Maybe')
        self.assertEqual(r.code, 200)
        self.assertIn('value="Authorize"', r.text)

    def testAuthorizeWithoutCSRF(self):
        r = self.request('/oauth2/authorize/', 'POST',
                         query_string=AUTH_ARGS, cookie=self.session,
                         data={'button': 'Authorize'})
        self.assertEqual(r.code, 200)
        self.assertIn('No button was pressed', r.text)
        self.assertIsNone(r.header('Location'))

    def token(self, **kw):
        data = {'client_id': 'app', 'grant_type': 'authorization_code',
                'redirect_uri': REDIRECT, 'code': self.code()}
        data.update(kw)
        return self.request('/oauth2/token/', 'POST', data=data)

    def testToken(self):
        r = self.token()
        self.assertEqual(r.code, 200)
        self.assertEqual(r.header('Content-Type'), 'application/json')
        answer = json.loads(r.text)
        self.assertEqual(answer['token_type'], 'bearer')
        self.assertEqual(answer['scope'], 'profile')
        self.assertEqual(answer['info'], {'name': 'Testportal'})
        claims, expsoon = self.portal.tokens.parse(answer['access_token'],
                                                   oauth2.ACCESS_TOKEN)
        self.assertEqual(claims['sub'], 'alice')
        self.assertEqual(claims['oa_client_id'], 'app')

    def testTokenFromQuery(self):
        args = {'client_id': 'app', 'grant_type': 'authorization_code',
                'redirect_uri': REDIRECT, 'code': self.code()}
        r = self.request('/oauth2/token/', query_string=args)
        self.assertIn('access_token', json.loads(r.text))

    def testTokenWrongClient(self):
        r = self.token(client_id='other')
        self.assertIn('Mismatching client_id', r.text)

    def testTokenGrantType(self):
        r = self.token(grant_type='password')
        self.assertIn('Not supported or unknown grant_type password', r.text)

    def testTokenBadCode(self):
        r = self.token(code='garbage')
        self.assertIn('Token does not even look like a token', r.text)

    def testTokenEmptyCode(self):
        r = self.token(code='')
        self.assertIn('Empty code', r.text)

    def testInfo(self):
        code = self.code()
        r = self.request('/oauth2/info/', query_string={'code': code})
        self.assertEqual(r.code, 200)
        answer = json.loads(r.text)
        self.assertEqual(answer['client_id'], 'app')
        self.assertEqual(answer['scope'], 'profile')
        self.assertEqual(answer['access_token'], code)
        self.assertTrue(0 < answer['expires_in'] <= 60)

    def testInfoMissingCode(self):
        r = self.request('/oauth2/info/')
        self.assertIn('Missing code', r.text)

    def testInfoBadCode(self):
        r = self.request('/oauth2/info/', query_string={'code': 'garbage'})
        self.assertIn('Token does not even look like a token', r.text)

# vim: set filetype=python sts=4 sw=4 et si :
