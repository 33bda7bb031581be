"""Generate and store thread local logging context including unique
trace id for request, request source etc. to be logged.

Every web request gets a short trace id (an encoded uuid4) and a trace
reason (the request URI). Both live in context variables so that log
lines written while serving one request can be tied together::

   import logging
   from pitchfork import logcontext

   handler.addFilter(logcontext.ContextFilter())
   handler.setFormatter(logging.Formatter(
       '%(asctime)s %(trace_id)s %(levelname)s %(message)s'))

To change how the id is generated, replace ``idgen``::

   import pitchfork.logcontext
   pitchfork.logcontext.idgen = my_generator

"""
import contextvars
import functools
import logging
import uuid


def short_uuid():
    """Encode a UUID integer in a shorter form for display.

       A uuid is long. Make a shorter version that takes less room
       in a log line and is easier to store.
    """
    alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz1234567890"
    result = ""
    alphabet_len = len(alphabet)
    uuid_int = uuid.uuid4().int
    while uuid_int:
        uuid_int, t = divmod(uuid_int, alphabet_len)
        result += alphabet[t]
    return result or "0"


#: Variable used for setting the id generator.
idgen = short_uuid


logger = logging.getLogger("pitchfork.logcontext")


class SimpleSentinel:
    """A sentinel value where __str__() can be defined.

       A plain object() sentinel shows up as "<object ...>" when it ends
       up as an argument to logging calls. This prints something useful
       instead.
    """
    __slots__ = ("name", "str")

    def __init__(self, name=None, str_value=""):
        self.name = name
        self.str = str_value

    def __str__(self):
        # Generate a string without whitespace.
        # Used in logging where whitespace could be
        # a field delimiter
        return ("%s%s" % (
            self.name + "-" if self.name else "",
            self.str)).replace(" ", "_")

    def __repr__(self):
        return 'SimpleSentinel(name=%s, str_value="%s")' % (
            self.name, self.str)


# contextvars.copy_context().items() returns nothing for variables that
# were never set, so the names are kept here.
ctx_vars = {}

_SENTINEL_ID = SimpleSentinel("trace_id", "not set")
ctx_vars['trace_id'] = contextvars.ContextVar("trace_id", default=_SENTINEL_ID)


_SENTINEL_REASON = SimpleSentinel("trace_reason", "missing")
ctx_vars['trace_reason'] = contextvars.ContextVar("trace_reason",
                                                  default=_SENTINEL_REASON)


def gen_trace_id():
    """Decorator to generate a trace id (encoded uuid4) as contextvar

       The logging routine uses this to label every log line. All
       logs with the same trace_id should be generated from a
       single request.

       It will not set a trace_id if one is already assigned, so
       nested entry points keep the outer id.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            prev = None
            trace_id = ctx_vars['trace_id']
            if trace_id.get() is _SENTINEL_ID:
                prev = trace_id.set(idgen())
            try:
                r = func(*args, **kwargs)
            finally:
                if prev:
                    trace_id.reset(prev)
            return r
        return wrapper
    return decorator


def store_trace_reason(location=None):
    """Decorator finds and stores a reason trace was started in contextvar.

       For "wsgi" the reason is the request URI taken from the environ
       passed as first argument after self.

       If a different reason is already stored an error is logged.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):

            reason = None
            prev_trace_reason = None
            trace_reason = ctx_vars['trace_reason']
            stored_reason = trace_reason.get()

            if location == "wsgi":
                environ = args[1]
                reason = environ.get('REQUEST_URI') or (
                    environ.get('PATH_INFO', '') + (
                        '?' + environ['QUERY_STRING']
                        if environ.get('QUERY_STRING') else ''))

            if reason is None:
                pass
            elif stored_reason is _SENTINEL_REASON:
                prev_trace_reason = trace_reason.set(reason)
            elif reason != stored_reason:
                logger.error("Mismatched REASON's: stored: %s, new: %s at %s",
                             stored_reason, reason, location)

            try:
                r = func(*args, **kwargs)
            finally:
                # reset context var in case thread is reused for
                # another request.
                if prev_trace_reason:
                    trace_reason.reset(prev_trace_reason)
            return r
        return wrapper
    return decorator


def get_context_info():
    """Return list of context var tuples [(var_name, var_value), ...]"""

    return [(name, ctx.get()) for name, ctx in ctx_vars.items()]


def get_context_dict():
    """Return dict of context var tuples {"var_name": "var_value", ...}"""
    return {name: ctx.get() for name, ctx in ctx_vars.items()}


class ContextFilter(logging.Filter):
    """Copy the context variables onto every LogRecord passing through."""

    def filter(self, record):
        for name, value in get_context_info():
            setattr(record, name, str(value))
        return True
