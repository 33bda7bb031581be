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

'''Pitchfork - the request core of a community portal.

Pitchfork serves groups of people who trust each other: every member has
a user account, groups carry wikis, file stores and calendars, and other
applications can identify members through OAuth2.

The request pipeline is layered::

  _________________________________________________________________
 |   Web Browser   |   API client (Bearer)   |   OAuth2 consumer    |
 |-----------------------------------------------------------------|
 |        pitchfork.cgi (client, menus, forms, flush, logs)        |
 |-----------------------------------------------------------------|
 |   pitchfork.context (user, permissions, CLI command dispatch)   |
 |-----------------------------------------------------------------|
 |   pitchfork.token / pitchfork.iptrk / pitchfork.configuration   |
  -----------------------------------------------------------------

These are implemented in the code in the following manner::

     Web User: pitchfork.cgi.wsgi_handler over pitchfork.cgi.client
               and pitchfork.cgi.root
      Command: pitchfork.menu, reached through Context.cmd()
       Tokens: pitchfork.token (sessions, CSRF, OAuth2)

A request is accepted by the WSGI dispatcher, the client IP is resolved,
the session token is decoded, the root menu is walked down to a single
handler, and finally the response is flushed exactly once.
'''
__docformat__ = 'restructuredtext'

__version__ = '1.0.0'

# vim: set filetype=python ts=4 sw=4 et si
