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
#

"""Top-level portal interface.

Open a portal with:

    >>> from pitchfork import instance
    >>> portal = instance.open('path to portal home')
    >>> portal.start()

The portal holds everything shared between requests: configuration,
the permission gate, the token service, the IP tracker, the access log
writer, the command menu and the templates.  Each request gets its own
`pitchfork.cgi.client.Client` through `Portal.Client`.
"""
__docformat__ = 'restructuredtext'

import logging
import os

from pitchfork import configuration, iptrk, menu, security, token, user
from pitchfork.cgi import accesslog, client, templating

logger = logging.getLogger('pitchfork')


class Portal:
    def __init__(self, portal_home=None, settings={}):
        """Portal instance constructor

        Parameters:
            portal_home:
                portal home directory holding config.ini.  When None
                the defaults are used.
            settings:
                optional configuration overrides (dictionary)
        """
        self.portal_home = portal_home
        self.config = configuration.CoreConfig(portal_home, settings)
        self.security = security.Security(self.config)
        self.tokens = token.TokenService(self.config)
        self.iptrk = iptrk.IPTracker.from_config(self.config)
        self.users = user.UserDB()
        self.cli_menu = menu.main_menu()
        self.accesslog = accesslog.AccessLog(self.config["LOGGING_ACCESS_LOG"])
        self.templates = templating.get_templates(self.config["TEMPLATES"])

        # hooks changing menus right before they are used, each is
        # called as hook(ctx, menu)
        self.cli_menu_hook = None
        self.ui_main_menu_hook = None
        self.ui_sub_menu_hook = None

        self.Client = client.Client

    def menu_override(self, ctx, menu):
        if self.cli_menu_hook is not None:
            self.cli_menu_hook(ctx, menu)

    def ui_main_menu_override(self, cui, menu):
        if self.ui_main_menu_hook is not None:
            self.ui_main_menu_hook(cui, menu)

    def ui_sub_menu_override(self, cui, menu):
        if self.ui_sub_menu_hook is not None:
            self.ui_sub_menu_hook(cui, menu)

    def start(self):
        """Start the background workers"""
        self.iptrk.start(self.config["IPTRK_CHECK_INTERVAL"])
        self.tokens.invalid.start(self.config["JWT_INVALID_CHECK_INTERVAL"])
        self.accesslog.start()
        logger.info("Portal %s started", self.config["SYSNAME"])

    def stop(self):
        """Stop the background workers, the access log is drained"""
        self.accesslog.stop()
        self.tokens.invalid.stop()
        self.iptrk.stop()
        logger.info("Portal %s stopped", self.config["SYSNAME"])


def open(portal_home=None, settings={}):
    if portal_home is not None and not os.path.isdir(portal_home):
        raise ValueError('%r is not a directory' % (portal_home,))
    return Portal(portal_home, settings)

# vim: set filetype=python sts=4 sw=4 et si :
