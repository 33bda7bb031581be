import errno
import os
import shutil
import sys
import unittest

import pytest

from pitchfork import instance
from pitchfork.cgi.menu import UIMenu
from pitchfork.scripts import pitchfork_server

from .mocknull import MockNull
from .portal_base import makeClient, setupPortal

config_dir = '_test_instance'


class PortalTestCase(unittest.TestCase):
    def testOpenMissingHome(self):
        self.assertRaises(ValueError, instance.open, '_no_such_portal_dir')

    def testHooks(self):
        portal = setupPortal()
        seen = []
        portal.cli_menu_hook = lambda ctx, menu: seen.append('cli')
        portal.ui_main_menu_hook = lambda cui, menu: seen.append('main')
        portal.ui_sub_menu_hook = lambda cui, menu: seen.append('sub')

        client = makeClient(portal, '/')
        client.cmd_out('', [])
        client.main_menu()
        client.set_path([])
        client.ui_menu(UIMenu())
        self.assertEqual(seen, ['cli', 'main', 'sub'])

    @pytest.mark.threads
    def testStartStop(self):
        portal = setupPortal()
        portal.start()
        try:
            self.assertIsNotNone(portal.iptrk._thread)
            self.assertIsNotNone(portal.tokens.invalid._timer)
        finally:
            portal.stop()
        self.assertIsNone(portal.iptrk._thread)
        self.assertIsNone(portal.tokens.invalid._timer)

    def testClientGone(self):
        portal = setupPortal()

        def gone(data):
            raise BrokenPipeError(errno.EPIPE, 'Broken pipe')

        client = makeClient(portal, '/')
        client.request = MockNull(wfile=MockNull(write=gone))
        client.outln('lost')
        client.flush()
        self.assertTrue(client.hasflushed)
        [(args, kwargs)] = client.request.start_response.calls
        self.assertEqual(args[1], 200)
        self.assertTrue(client.is_disconnected())
        # nothing more is sent to a caller that went away
        self.assertFalse(client.write("more"))

        def broken(data):
            raise OSError(errno.EACCES, 'Permission denied')

        client = makeClient(portal, '/')
        client.request = MockNull(wfile=MockNull(write=broken))
        client.outln('lost')
        self.assertRaises(OSError, client.flush)
        self.assertFalse(client.is_disconnected())


class ServerScriptTestCase(unittest.TestCase):

    @pytest.fixture(autouse=True)
    def inject_fixtures(self, capsys):
        self._capsys = capsys

    def setUp(self):
        if os.path.exists(config_dir):
            shutil.rmtree(config_dir)
        os.makedirs(config_dir)
        self.argv = sys.argv
        self.run_simple = pitchfork_server.run_simple
        self.served = []

    def tearDown(self):
        sys.argv = self.argv
        pitchfork_server.run_simple = self.run_simple
        shutil.rmtree(config_dir)

    def run_script(self, *args):
        sys.argv = ['pitchfork-server'] + list(args)
        return pitchfork_server.run()

    def testHelp(self):
        self.assertEqual(self.run_script('-h'), 0)
        self.assertIn('Usage: pitchfork-server', self._capsys.readouterr().out)

    def testVersion(self):
        self.assertEqual(self.run_script('-v'), 0)
        self.assertIn('(python ', self._capsys.readouterr().out)

    def testBadOption(self):
        self.assertEqual(self.run_script('-x'), 1)
        self.assertIn('option -x not recognized',
                      self._capsys.readouterr().out)

    def testTooManyHomes(self):
        self.assertEqual(self.run_script('a', 'b'), 1)

    def testMissingHome(self):
        self.assertEqual(self.run_script('_no_such_portal_dir'), 1)
        self.assertIn('is not a directory', self._capsys.readouterr().out)

    def testSaveConfig(self):
        self.assertEqual(self.run_script('-S', '-p', '9000', config_dir), 0)
        with open(os.path.join(config_dir, 'config.ini')) as f:
            text = f.read()
        self.assertIn('http_port = 9000', text)
        self.assertIn('Configuration saved to',
                      self._capsys.readouterr().out)

    def testServe(self):
        def run_simple(host, port, app, threaded=False):
            self.served.append((host, port, threaded))
            self.assertTrue(app.portal.accesslog is not None)
        pitchfork_server.run_simple = run_simple

        self.assertEqual(self.run_script('-n', 'localhost', '-p', '9001',
                                         config_dir), 0)
        self.assertEqual(self.served, [('localhost', 9001, True)])

# vim: set filetype=python sts=4 sw=4 et si :
