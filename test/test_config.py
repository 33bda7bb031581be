#
# Copyright (c) 2001 Bizar Software Pty Ltd (http://www.bizarsoftware.com.au/)
# This module is free software, and you may redistribute it and/or modify
# under the same terms as Python, so long as this copyright message and
# disclaimer are retained in their original form.
#
# IN NO EVENT SHALL BIZAR SOFTWARE PTY LTD BE LIABLE TO ANY PARTY FOR
# DIRECT, INDIRECT, SPECIAL, INCIDENTAL, OR CONSEQUENTIAL DAMAGES ARISING
# OUT OF THE USE OF THIS CODE, EVEN IF THE AUTHOR HAS BEEN ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.
#
# BIZAR SOFTWARE PTY LTD SPECIFICALLY DISCLAIMS ANY WARRANTIES, INCLUDING,
# BUT NOT LIMITED TO, THE IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS
# FOR A PARTICULAR PURPOSE.  THE CODE PROVIDED HEREUNDER IS ON AN "AS IS"
# BASIS, AND THERE IS NO OBLIGATION WHATSOEVER TO PROVIDE MAINTENANCE,
# SUPPORT, UPDATES, ENHANCEMENTS, OR MODIFICATIONS.

import ipaddress
import logging
import os
import shutil
import unittest

from textwrap import dedent

from pitchfork import configuration

config_dir = '_test_config'


class ConfigTest(unittest.TestCase):

    def setUp(self):
        if os.path.exists(config_dir):
            shutil.rmtree(config_dir)
        os.makedirs(config_dir)

    def tearDown(self):
        shutil.rmtree(config_dir)

    def writeIni(self, text):
        with open(os.path.join(config_dir, 'config.ini'), 'w') as f:
            f.write(dedent(text))

    def testDefaults(self):
        config = configuration.CoreConfig()
        self.assertEqual(config['SYSNAME'], 'Pitchfork')
        self.assertEqual(config['WEB_COOKIE_NAME'], '_pitchfork')
        self.assertEqual(config['WEB_HTTP_PORT'], 8333)
        self.assertEqual(config['CSS'], ['style', 'form'])
        self.assertEqual(config['JWT_TOKEN_EXPIRATION_MINUTES'], 20)
        self.assertEqual(config['IPTRK_MAX'], 5)
        self.assertTrue(config['NOINDEX'])
        self.assertFalse(config['DEBUG'])
        self.assertEqual(config['WEB_XFF_TRUSTED_CIDR'], [
            ipaddress.ip_network('127.0.0.0/8'),
            ipaddress.ip_network('::1/128')])
        self.assertEqual(config['WEB_SYSADMIN_RESTRICT_CIDR'], [])

    def testAttributeAccess(self):
        config = configuration.CoreConfig()
        self.assertEqual(config.SYSNAME, 'Pitchfork')
        config.SYSNAME = 'Other'
        self.assertEqual(config['SYSNAME'], 'Other')

    def testSettings(self):
        config = configuration.CoreConfig(settings={'sysname': 'Test',
                                                    'web_enable_cli': 'no'})
        self.assertEqual(config['SYSNAME'], 'Test')
        self.assertFalse(config['WEB_ENABLE_CLI'])

    def testInvalidOption(self):
        config = configuration.CoreConfig()
        self.assertRaises(configuration.InvalidOptionError,
                          config.__getitem__, 'NO_SUCH_OPTION')

    def testBadValues(self):
        config = configuration.CoreConfig()
        self.assertRaises(configuration.OptionValueError,
                          config.__setitem__, 'NOINDEX', 'maybe')
        self.assertRaises(configuration.OptionValueError,
                          config.__setitem__, 'IPTRK_MAX', 'many')
        self.assertRaises(configuration.OptionValueError,
                          config.__setitem__, 'WEB_XFF_TRUSTED_CIDR',
                          '300.0.0.1/8')

    def testLoadIni(self):
        self.writeIni('''
            [main]
            sysname = Ini Portal
            templates = tpl

            [web]
            cookie_name = _Session
            xff_trusted_cidr = 10.1.2.3/8

            [iptrk]
            max = 3
            ''')
        config = configuration.CoreConfig(config_dir)
        self.assertEqual(config['SYSNAME'], 'Ini Portal')
        self.assertEqual(config['IPTRK_MAX'], 3)
        self.assertEqual(config['WEB_COOKIE_NAME'], '_Session')
        # host bits are allowed
        self.assertEqual(config['WEB_XFF_TRUSTED_CIDR'],
                         [ipaddress.ip_network('10.0.0.0/8')])
        # relative to the home directory
        self.assertEqual(config['TEMPLATES'], os.path.join(config_dir, 'tpl'))

    def testSaveAndReload(self):
        config = configuration.CoreConfig(config_dir)
        config['SYSNAME'] = 'Saved'
        config['JWT_SECRET'] = 'a' * 40
        config.save()
        self.assertTrue(os.path.exists(os.path.join(config_dir,
                                                    'config.ini')))
        config = configuration.CoreConfig(config_dir)
        self.assertEqual(config['SYSNAME'], 'Saved')

    def testGeneratedSecretNotSaved(self):
        config = configuration.CoreConfig(config_dir)
        secret = config['JWT_SECRET']
        self.assertEqual(len(secret), 64)
        self.assertEqual(config['JWT_SECRET'], secret)
        config.save()
        with open(os.path.join(config_dir, 'config.ini')) as f:
            self.assertNotIn(secret, f.read())

    def testCfgLookup(self):
        config = configuration.CoreConfig()
        self.assertEqual(config.cfg_lookup('CFG_USERNAME_MIN_LENGTH'), '3')
        self.assertEqual(config.cfg_lookup('CFG_username_example'),
                         'john.doe')
        self.assertEqual(config.cfg_lookup('42'), '42')
        self.assertEqual(config.cfg_lookup(''), '')
        self.assertRaises(configuration.InvalidOptionError,
                          config.cfg_lookup, 'CFG_BOGUS')

    def testLogging(self):
        config = configuration.CoreConfig(settings={'logging_level':
                                                    'DEBUG'})
        config.init_logging()
        logger = logging.getLogger('pitchfork')
        self.assertEqual(logger.level, logging.DEBUG)
        self.assertEqual(len(logger.handlers), 1)
        config['LOGGING_LEVEL'] = 'ERROR'
        config.init_logging()
        self.assertEqual(logger.level, logging.ERROR)

# vim: set filetype=python sts=4 sw=4 et si :
