# WSGI interface for Pitchfork
#
# This module is free software, you may redistribute it
# and/or modify under the same terms as Python.
#

from html import escape as html_escape
from http.server import BaseHTTPRequestHandler, DEFAULT_ERROR_MESSAGE

from werkzeug.wrappers import Request

from pitchfork import instance
from pitchfork.cgi import root
from pitchfork.logcontext import gen_trace_id, store_trace_reason


class Writer(object):
    '''Perform a start_response if need be when we start writing.'''
    def __init__(self, request):
        self.request = request

    def write(self, data):
        f = self.request.get_wfile()
        self.write = f
        return self.write(data)


class RequestHandler(object):
    def __init__(self, environ, start_response):
        self.__start_response = start_response
        self.__wfile = None
        self.wfile = Writer(self)

    def start_response(self, headers, response_code):
        """Set HTTP response code"""
        message, explain = BaseHTTPRequestHandler.responses[response_code]
        self.__wfile = self.__start_response('%d %s' % (response_code,
                                                        message), headers)

    def get_wfile(self):
        if self.__wfile is None:
            raise ValueError('start_response() not called')
        return self.__wfile


class RequestDispatcher(object):
    """The WSGI application of a portal

    The portal is opened once; its background workers are started by
    start() (or by the caller through dispatcher.portal).
    """
    def __init__(self, home=None, settings={}):
        self.home = home
        self.portal = instance.open(home, settings)

    def start(self):
        self.portal.start()

    def stop(self):
        self.portal.stop()

    @gen_trace_id()
    @store_trace_reason("wsgi")
    def __call__(self, environ, start_response):
        request = RequestHandler(environ, start_response)

        if environ['REQUEST_METHOD'] == 'OPTIONS':
            code = 501
            message, explain = BaseHTTPRequestHandler.responses[code]
            request.start_response([('Content-Type', 'text/html')], code)
            request.wfile.write((DEFAULT_ERROR_MESSAGE % {
                'code': code,
                'message': html_escape(message),
                'explain': html_escape(explain),
            }).encode('utf-8'))
            return []

        client = self.portal.Client(self.portal, request, environ,
                                    Request(environ))
        root.h_root(client)

        # all body data has been written using wfile
        return []

# vim: set filetype=python sts=4 sw=4 et si :
