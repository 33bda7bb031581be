"""Bind submitted forms to back-end commands.

Two styles are supported.  handle_form() runs one command per field of
a record, ``<cmd> set <field> <args...> <value>``, which suits objects
with ``set`` commands for their properties.  handle_cmd() fills in the
empty arguments of a single command from the form, guided by the
argument names of the command (see pitchfork.menu).
"""
__docformat__ = 'restructuredtext'

import logging

from pitchfork.cgi import form
from pitchfork.cgi.exceptions import FormError, MissingValueError
from pitchfork.exceptions import PitchforkException, UnknownCommand

logger = logging.getLogger('pitchfork.cgi')

# arguments never written to the log
MASKED_ARGS = ("password", "twofactor", "keyring")


def handle_form(client, cmd, args, obj):
    """handle_form_s() without deriving the operation from the button"""
    return handle_form_s(client, cmd, args, obj, False)


def handle_form_s(client, cmd, args, obj, autoop=False):
    """Run a command for every field of obj present in the posted form

    When autoop is set the operation follows the pressed submit button:
    "Add" and "Remove" act on list fields, anything else sets the plain
    fields.  The operation is appended to cmd.  Without autoop the
    operation is "set" and list fields are skipped.

    Returns (message, error): a summary of what was modified and the
    exception of the last failing command, or None.  Commands unknown to
    the back-end are ignored.  Raises FormError when the request can not
    be processed at all.
    """
    updates = 0
    nomods = 0
    err = None

    # nothing to do for a GET
    if client.is_get():
        return "", None

    logger.debug("HandleForm(%s)", cmd)

    if not client.is_post():
        raise FormError("Only POST supported")

    if not client.check_csrf():
        raise FormError("Form expired, please refresh and try again")

    if autoop:
        try:
            val = client.form_value("submit")
        except FormError:
            val = ""

        btn = val.lower()
        if btn == "":
            raise FormError("No submission button pressed")
        elif btn in ("add", "remove"):
            op = btn
        else:
            op = "set"

        cmd += " " + op
    else:
        op = "set"

    fields = form.struct_vars(client, obj, form.PTYPE_UPDATE)

    for key, ttype in fields.items():
        if ttype in ("ignore", "submit", "note", "widenote"):
            continue

        if ttype == "bool":
            try:
                val = client.form_value(key)
            except MissingValueError:
                # unchecked boxes are not submitted
                val = ""
            except FormError:
                continue
            if val == "":
                val = "off"
            val = form.normalize_boolean(val)

        elif ttype == "file":
            field = obj.field(key)
            try:
                val = client.get_form_file(key, field.maximagesize,
                                           field.b64)
            except (FormError, OSError, ValueError):
                # not uploaded
                continue

        else:
            try:
                val = client.form_value(key)
            except FormError:
                continue

        if op == "set":
            if ttype == "slice":
                # slices can only be added to or removed from
                continue
        else:
            if ttype != "slice":
                continue
            if val == "":
                continue

        cmds = cmd.split(" ") + [key] + list(args) + [val]

        try:
            client.cmd(cmds)
        except UnknownCommand:
            client.buffered()
            continue
        except (PitchforkException, ValueError) as e:
            logger.error("HandleForm(%r) - Cmd - err: %s", cmds, e)
            client.buffered()
            # only the last error is kept
            err = e
            continue

        msg = client.buffered()
        if msg.split(" ")[0] == "Updated":
            updates += 1
        else:
            nomods += 1

    msg = ""
    if updates > 0:
        msg = "Updated %d fields" % updates

    if nomods > 0:
        if msg:
            msg += ", "
        msg += "%d fields where not modified" % nomods

    if msg == "":
        msg = "No fields where modified"

    return msg, err


def _masked(name, val):
    if name not in MASKED_ARGS:
        return val
    if val:
        return "*%s*" % name
    return "(%s not given)" % name


def handle_cmd(client, cmd, args):
    """Run cmd with args, the empty args filled in from the form

    An argument spec ``name#file[#maxsize][#base64]`` takes an upload;
    everything else is read as form value ``name``.  Returns the output
    of the command.  Raises FormError for unusable requests and missing
    values, and whatever the command raises.
    """
    args = list(args)
    vargs = list(args)

    if client.is_get():
        return ""

    if not client.is_post():
        raise FormError("Only POST supported")

    if not client.check_csrf():
        raise FormError("Invalid HTML Form submitted")

    logger.debug('HandleCmd("%s")%r', cmd, vargs)

    cmds = cmd.split(" ") + args

    try:
        entry = client.walk_menu(cmds)
    except (PitchforkException, ValueError) as e:
        logger.error("WalkMenu(%r) failed: %s", cmds, e)
        raise

    # not a command with arguments, walking the menu ran it already
    if entry is not None:
        for n, spec in enumerate(entry.args or []):
            if n >= len(args):
                if n >= entry.args_min:
                    # optional
                    break
                logger.error("HandleCmd(%s) missing variable room for "
                             "argument (args:%d)", cmd, len(args))
                raise FormError("Invalid argument")

            if args[n] != "":
                continue

            opt = spec.split("#")
            if len(opt) > 1 and opt[1] == "file":
                maxsize = ""
                b64 = False
                if len(opt) > 2:
                    maxsize = opt[2]
                if len(opt) > 3:
                    b64 = form.is_true(opt[3])
                val = client.get_form_file(opt[0], maxsize, b64)
            else:
                val = client.form_value(opt[0])

            vargs[n] = _masked(opt[0], val)
            logger.debug("Arg %s = %s", opt[0], vargs[n])
            args[n] = val

        cmds = cmd.split(" ") + args
        logger.debug("HandleCmd() - exec: %r", cmd.split(" ") + vargs)
        try:
            client.cmd(cmds)
        except (PitchforkException, ValueError) as e:
            client.buffered()
            logger.error("HandleCmd() - err: %s", e)
            raise

    return client.buffered()

# vim: set filetype=python sts=4 sw=4 et si :
