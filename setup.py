#! /usr/bin/env python
# -*- coding: utf-8 -*-
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

from setuptools import setup

from sysconfig import get_path

import sys, os
from glob import glob


def include(d, e):
    """Generate a pair of (directory, file-list) for installation.

    'd' -- A directory

    'e' -- A glob pattern"""

    return (d, [f for f in glob('%s/%s'%(d, e)) if os.path.isfile(f)])


def mapscript(path):
    """ Helper for building a list of script names from a list of
        module files.
    """
    module = os.path.splitext(os.path.basename(path))[0]
    script = module.replace('_', '-')
    return '%s = pitchfork.scripts.%s:run' % (script, module)

def make_data_files_absolute(data_files, prefix):
    """Data files (templates and the webroot) are installed below the
       prefix, not in the egg directory: templates end up in places
       like /usr/local/share/pitchfork/templates.
    """
    new_data_files = [ (os.path.join(prefix,df[0]),df[1])
                       for df in data_files ]

    return new_data_files

def get_prefix():
    """Get site specific prefix using --prefix, platform lib or
       sys.prefix.
    """
    prefix_arg=False
    prefix=""
    for a in sys.argv:
        if prefix_arg:
            prefix=a
            break
        if a.startswith('--prefix'):
            if a == '--prefix':
                # next argument is prefix
                prefix_arg=True
                continue
            else:
                # strip '--prefix='
                prefix=a[9:]
    if prefix:
        return prefix
    else:
        # get the platform lib path.
        plp = get_path('platlib')
        # nuke suffix that matches lib/* and return prefix
        head, tail = os.path.split(plp)
        while tail != 'lib' and head != '':
            head, tail = os.path.split(head)
        if not head:
            head = sys.prefix
        return head


def main():
    packages = [
        'pitchfork',
        'pitchfork.cgi',
        'pitchfork.scripts',
    ]

    # build list of scripts from their implementation modules
    scripts = [mapscript(f) for f in glob('pitchfork/scripts/[!_]*.py')]

    # add the templates and the webroot to the data files lists
    data_files = []
    for root, dirs, files in os.walk('share/pitchfork'):
        data_files.append(include(root, '*'))

    data_files = make_data_files_absolute(data_files, get_prefix())

    # perform the setup action
    from pitchfork import __version__

    setup(name='pitchfork',
          version=__version__,
          description="Core of a web portal: path menus, session tokens,"
            " CSRF protected forms, a command menu shared by the web CLI"
            " and API, and OAuth2 endpoints.",
          long_description=open('README.txt').read(),
          classifiers=['Development Status :: 4 - Beta',
                       'Environment :: Web Environment',
                       'Intended Audience :: Developers',
                       'Intended Audience :: System Administrators',
                       'License :: OSI Approved :: MIT License',
                       'Operating System :: POSIX',
                       'Programming Language :: Python',
                       'Programming Language :: Python :: 3',
                       'Topic :: Internet :: WWW/HTTP :: WSGI :: Application',
                       ],
          python_requires='>=3.7',
          install_requires=[
              'jinja2',
              'markupsafe',
              'PyJWT>=2.0',
              'werkzeug>=2.0',
              'Pillow',
          ],
          extras_require={
              'test': ['pytest'],
          },
          packages=packages,
          entry_points={
              'console_scripts': scripts
          },
          data_files=data_files)

if __name__ == '__main__':
    os.chdir(os.path.dirname(__file__) or '.')
    main()

# vim: set filetype=python sts=4 sw=4 et si :
