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

"""Command-line script that runs a portal with a standalone web server.
"""
__docformat__ = 'restructuredtext'

import getopt
import os
import sys

from werkzeug.serving import run_simple

from pitchfork import __version__ as pitchfork_version
from pitchfork.cgi.wsgi_handler import RequestDispatcher


def usage(message=''):
    if message:
        message += '\n'
    print('''%(message)sUsage: pitchfork-server [options] [portal home]

Options:
 -v            print the Pitchfork version number and exit
 -h            print this text and exit
 -S            create or update the configuration file and exit
 -n <name>     set the host name to listen on (default: web http_host)
 -p <port>     set the port to listen on (default: web http_port)

The portal home is the directory holding config.ini, the current
directory when omitted.

Examples:

 pitchfork-server /var/lib/pitchfork

 pitchfork-server -S /var/lib/pitchfork
''' % {'message': message})


def run():
    ''' Script entry point - handle args and start the server.
    '''
    try:
        optlist, args = getopt.getopt(sys.argv[1:], "hvSn:p:",
            ("help", "version", "save-config"))
    except getopt.GetoptError as e:
        usage(str(e))
        return 1

    if len(args) > 1:
        usage("Only one portal home can be given")
        return 1
    home = os.path.abspath(args and args[0] or ".")

    settings = {}
    save = False
    for opt, arg in optlist:
        if opt in ("-h", "--help"):
            usage()
            return 0
        elif opt in ("-v", "--version"):
            print('%s (python %s)' % (pitchfork_version,
                sys.version.split()[0]))
            return 0
        elif opt in ("-S", "--save-config"):
            save = True
        elif opt == "-n":
            settings["WEB_HTTP_HOST"] = arg
        elif opt == "-p":
            settings["WEB_HTTP_PORT"] = arg

    try:
        dispatcher = RequestDispatcher(home, settings)
    except ValueError as e:
        usage(str(e))
        return 1

    config = dispatcher.portal.config
    if save:
        config.save(os.path.join(home, config.INI_FILE))
        print('Configuration saved to %s' % os.path.join(home,
            config.INI_FILE))
        return 0

    dispatcher.start()
    try:
        run_simple(config["WEB_HTTP_HOST"], config["WEB_HTTP_PORT"],
                   dispatcher, threaded=True)
    except KeyboardInterrupt:
        print('Keyboard Interrupt: exiting')
    finally:
        dispatcher.stop()
    return 0


if __name__ == '__main__':
    sys.exit(run())

# vim: set filetype=python sts=4 sw=4 et si :
