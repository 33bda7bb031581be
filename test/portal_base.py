"""Portals and requests for the tests.

setupPortal() opens a portal using the templates and webroot of the
source tree; makeClient() and Response drive single requests through a
Client or the WSGI dispatcher.
"""
import os
import shutil
import unittest

from werkzeug.test import EnvironBuilder
from werkzeug.wrappers import Request

from pitchfork import instance, token
from pitchfork.cgi import csrf
from pitchfork.cgi.client import Client
from pitchfork.cgi.wsgi_handler import RequestDispatcher
from pitchfork.user import User

share = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(
    __file__))), 'share', 'pitchfork')

SECRET = 'test-secret-0123456789abcdef0123456789abcdef'

settings = {
    'TEMPLATES': os.path.join(share, 'templates'),
    'WEBROOT': os.path.join(share, 'webroot'),
    'JWT_SECRET': SECRET,
    'WEB_COOKIE_SECURE': 'no',
    'SYSNAME': 'Testportal',
}


def portalSettings(**kw):
    s = dict(settings)
    s.update(kw)
    return s


def setupPortal(dirname=None, **kw):
    """Open a portal with user alice (password "alice-pw") and sysadmin
    root (password "root-pw")"""
    if dirname is not None:
        if os.path.exists(dirname):
            shutil.rmtree(dirname)
        os.makedirs(dirname)
    portal = instance.open(dirname, portalSettings(**kw))
    addUsers(portal)
    return portal


def addUsers(portal):
    alice = User('alice', 'Alice Example')
    alice.set_password('alice-pw', rounds=1000)
    portal.users.add_user(alice)
    root = User('root', 'Root Admin', can_be_sysadmin=True)
    root.set_password('root-pw', rounds=1000)
    portal.users.add_user(root)


def sessionToken(portal, username, minutes=20, sysadmin=False):
    user = portal.users.fetch(username)
    return portal.tokens.new(token.SESSION_TOKEN, username, minutes,
                             {'userdesc': user.fullname,
                              'issysadmin': sysadmin})


def makeEnviron(path='/', method='GET', remote='127.0.0.1', headers=None,
                **kw):
    builder = EnvironBuilder(path=path, method=method, headers=headers,
                             environ_base={'REMOTE_ADDR': remote,
                                           'REMOTE_PORT': '12345'}, **kw)
    try:
        return builder.get_environ()
    finally:
        builder.close()


class Response:
    """Collects what is written to a (fake) WSGI server"""

    def __init__(self):
        self.status = None
        self.headers = []
        self.body = b''

    def start_response(self, status, headers):
        self.status = status
        self.headers = headers
        return self.write

    def write(self, data):
        self.body += data

    @property
    def code(self):
        return int(self.status.split()[0])

    @property
    def text(self):
        return self.body.decode('utf-8')

    def header(self, name):
        for key, value in self.headers:
            if key.lower() == name.lower():
                return value
        return None

    def header_list(self, name):
        return [v for k, v in self.headers if k.lower() == name.lower()]


class RequestRecorder:
    """Stands in for the server's RequestHandler of a Client"""

    def __init__(self):
        self.response = Response()
        self.wfile = self

    def start_response(self, headers, code):
        self.response.start_response('%d' % code, headers)

    def write(self, data):
        self.response.write(data)


def makeClient(portal, path='/', method='GET', **kw):
    """Return a Client for a request, initialised like h_root() does"""
    environ = makeEnviron(path, method, **kw)
    client = Client(portal, RequestRecorder(), environ, Request(environ))
    client.initialise()
    client.set_client()
    return client


class WebTestCase(unittest.TestCase):
    """Requests through the WSGI dispatcher of a fresh portal"""

    settings = {}

    def setUp(self):
        self.dispatcher = RequestDispatcher(None,
                                            portalSettings(**self.settings))
        self.portal = self.dispatcher.portal
        addUsers(self.portal)

    def request(self, path, method='GET', cookie=None, headers=None, **kw):
        headers = dict(headers or {})
        if cookie:
            headers['Cookie'] = '_pitchfork=' + cookie
        r = Response()
        result = self.dispatcher(makeEnviron(path, method, headers=headers,
                                             **kw), r.start_response)
        self.assertEqual(result, [])
        return r

    def csrfToken(self, path, user=''):
        tok, claims = csrf.csrf_token(self.portal.tokens, 'post',
                                      'localhost', path, '', user)
        return tok
