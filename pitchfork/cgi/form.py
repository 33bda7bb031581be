"""Forms rendered from declarative record descriptions.

A record is a subclass of `Record` with field descriptors declared as
class attributes; the fields are rendered in declaration order, fields
of base classes first::

    class Login(Record):
        username = String(label="Username", required=True,
                          min="CFG_USERNAME_MIN_LENGTH",
                          placeholder="CFG_USERNAME_EXAMPLE")
        password = Password(label="Password", required=True)
        comeback = Hidden(label="Comeback")
        button = Submit(label="Sign In")

    login = Login(comeback="/user/")

Templates render it with ``{{ pfform(ui, login, page, true) }}``, the
last argument selecting an editable (update) or read-only form.  The
third argument is looked up for ``message`` and ``error`` items (an
attribute or a key) which are shown below the fields.

Field attributes:

label
    shown before the input; fields without a label are not rendered
hint, placeholder
    HTML hint and placeholder; a placeholder may name a configuration
    slot as "CFG_NAME"
required
    marks the input required
min, max
    minimal/maximal string length or number, literal or "CFG_NAME"
htmlclass
    CSS class of the input
section
    fields with the same section are grouped in a fieldset with the
    section as legend
mask
    hide the input behind an expand button (passwords, keys)
omitempty
    do not render the field when its value is empty
formedit
    False for fields never editable from a form (eg username)
skipfailperm
    skip the field instead of failing the form when its permission
    check fails
visible
    name of a method on the record or one of the records containing
    it, or a callable, called with the field name; the field is only
    rendered when it returns True
options
    name of a method (as for visible) or callable returning
    (key, display) pairs; the field becomes a select box.  It is
    called with the result of object_context() found on the record
    trail, or None.  A single pair makes the field read-only.
checkboxmode
    render a Mapping as checkboxes instead of a multiple select
content
    text of a Note or WideNote without value
pfget, pfset
    permission names (see pitchfork.security.convert_perms) needed to
    read and to change the field
maximagesize, b64
    for File fields: resize uploaded images to fit "WxH", base64
    encode the upload
col
    name of the input, defaults to the lower cased attribute name

A record (or a record containing it) may define ``perm_check(ctx,
ptype, field)`` returning (ok, allowedit), ``object_context()`` and
``translate(text, lang)``.
"""
__docformat__ = 'restructuredtext'

import collections
import datetime
import itertools
import logging

from markupsafe import Markup, escape

from pitchfork.cgi import csrf
from pitchfork.exceptions import PermissionDenied

logger = logging.getLogger('pitchfork.cgi')

# What a form is used for, decides whether fields may be edited
PTYPE_CREATE = "create"
PTYPE_READ = "read"
PTYPE_UPDATE = "update"
PTYPE_DELETE = "delete"

# Marker of a readonly HTML input
PFFORM_READONLY = "readonly"

_creation = itertools.count()


class FormRenderError(ValueError):
    pass


def is_true(value):
    """True for the strings yes, true, on and 1 (in any case)"""
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("yes", "true", "on", "1")


def normalize_boolean(value):
    """Return "yes" or "no" for a submitted boolean"""
    if is_true(value):
        return "yes"
    return "no"


### Fields

class Field:
    """Base of all field descriptors

    ttype is the presentation type, kind the kind of value held.
    """

    ttype = "string"
    kind = "string"

    def __init__(self, label="", hint="", placeholder="", required=False,
                 min="", max="", htmlclass="", section="", mask=False,
                 omitempty=False, formedit=True, skipfailperm=False,
                 visible=None, options=None, checkboxmode=False, content="",
                 pfget="", pfset="", maximagesize="", b64=False, col="",
                 default=None):
        self.label = label
        self.hint = hint
        self.placeholder = placeholder
        self.required = required
        self.min = str(min)
        self.max = str(max)
        self.htmlclass = htmlclass
        self.section = section
        self.mask = mask
        self.omitempty = omitempty
        self.formedit = formedit
        self.skipfailperm = skipfailperm
        self.visible = visible
        self.options = options
        self.checkboxmode = checkboxmode
        self.content = content
        self.pfget = pfget
        self.pfset = pfset
        self.maximagesize = maximagesize
        self.b64 = b64
        self.col = col
        self.default = default
        self.name = None
        self.fname = col
        self._creation = next(_creation)

    def __set_name__(self, owner, name):
        self.name = name
        if not self.fname:
            self.fname = name.lower()

    def __repr__(self):
        return "<%s %s>" % (self.__class__.__name__, self.name)

    def default_value(self):
        if self.default is None:
            return ""
        return self.default

    def __get__(self, obj, owner=None):
        if obj is None:
            return self
        if self.name not in obj.__dict__:
            obj.__dict__[self.name] = self.default_value()
        return obj.__dict__[self.name]

    def __set__(self, obj, value):
        obj.__dict__[self.name] = value


class String(Field):
    pass


class Text(Field):
    ttype = "text"


class Password(Field):
    ttype = "password"


class Email(Field):
    ttype = "email"


class Tel(Field):
    ttype = "tel"


class File(Field):
    ttype = "file"


class Hidden(Field):
    ttype = "hidden"


class Submit(Field):
    """A submit button, the label is its value"""
    ttype = "submit"


class Note(Field):
    """Text shown next to the other inputs"""
    ttype = "note"


class WideNote(Field):
    """Text using the full width of the form, label space included"""
    ttype = "widenote"


class BoolString(Field):
    """A boolean kept as string ("yes", "no", ...)"""
    ttype = "bool"


class Bool(Field):
    ttype = "bool"
    kind = "bool"

    def default_value(self):
        return bool(self.default)


class Number(Field):
    ttype = "int"
    kind = "number"

    def default_value(self):
        if self.default is None:
            return 0
        return self.default


class Range(Number):
    ttype = "range"


class DateTime(Field):
    ttype = "time"
    kind = "time"

    def default_value(self):
        return self.default


class StringList(Field):
    ttype = "slice"
    kind = "slice"
    item = "string"

    def default_value(self):
        return list(self.default or [])


class NumberList(StringList):
    item = "number"


class Mapping(Field):
    ttype = "map"
    kind = "map"

    def default_value(self):
        return dict(self.default or {})


class Nested(Field):
    """A record embedded in another one, its fields render inline"""

    ttype = "struct"
    kind = "record"

    def __init__(self, record, **kwargs):
        Field.__init__(self, **kwargs)
        self.record = record

    def default_value(self):
        return self.record()


class Ignore(Field):
    ttype = "ignore"
    kind = "ignore"

    def default_value(self):
        return self.default


class Record:
    """Base class of form records, see the module documentation"""

    _fields = ()

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        fields = collections.OrderedDict()
        for klass in reversed(cls.__mro__):
            own = [v for v in vars(klass).values() if isinstance(v, Field)]
            for field in sorted(own, key=lambda f: f._creation):
                fields[field.name] = field
        cls._fields = tuple(fields.values())

    def __init__(self, **kwargs):
        names = set(f.name for f in self._fields)
        for name, value in kwargs.items():
            if name not in names:
                raise TypeError("%s has no field %r"
                                % (self.__class__.__name__, name))
            setattr(self, name, value)

    def __repr__(self):
        return "<%s>" % self.__class__.__name__

    @classmethod
    def field(cls, fname):
        """Return the field rendered as input fname, None if unknown"""
        for field in cls._fields:
            if field.fname == fname:
                return field
            if field.kind == "record":
                sub = field.record.field(fname)
                if sub is not None:
                    return sub
        return None


### The record trail

def find_on_trail(trail, name):
    """Return the first record on trail having a method name"""
    for obj in trail:
        if callable(getattr(obj, name, None)):
            return obj
    return None


def trail_name(trail):
    return ".".join([type(obj).__name__ for obj in reversed(trail)])


def translate(client, trail, text):
    if not text:
        return text
    holder = find_on_trail(trail, "translate")
    if holder is None:
        return text
    return holder.translate(text, client.lang)


def struct_perm_check(ctx, ptype, trail, field):
    """Return (ok, allowedit) for field

    ok tells whether the field may be seen at all, allowedit whether it
    may be changed.  A perm_check() method on the trail decides first,
    then the pfset (editing) or pfget (reading) permissions of the field.
    Raises PermissionDenied when the permissions can not be evaluated
    for the caller.
    """
    if ptype in (PTYPE_CREATE, PTYPE_UPDATE):
        allowedit = True
    elif ptype in (PTYPE_READ, PTYPE_DELETE):
        allowedit = False
    else:
        raise ValueError("Unknown ptype %r" % (ptype,))

    holder = find_on_trail(trail, "perm_check")
    if holder is not None:
        ok, allowedit = holder.perm_check(ctx, ptype, field)
        if not ok and allowedit:
            # retry in read mode
            ok, allowedit = holder.perm_check(ctx, PTYPE_READ, field)
        if not ok:
            return ok, allowedit

    tag = "pfget"
    if allowedit:
        tag = "pfset"
    permstr = getattr(field, tag)

    if holder is None or permstr:
        try:
            ok = ctx.check_perms_t("StructPermCheck(%s/%s/%s)"
                                   % (field.name, tag, permstr), permstr)
        except PermissionDenied:
            if not allowedit:
                raise
            # fall back to reading
            allowedit = False
            permstr = field.pfget
            if not permstr:
                raise
            ok = ctx.check_perms_t("StructPermCheck(%s/get/%s)"
                                   % (field.name, permstr), permstr)

    return ok, allowedit


def struct_vars(ctx, obj, ptype, trail=None):
    """Return {input name: presentation type} of the fields of obj the
    caller may see, nested records included"""
    trail = [obj] + list(trail or [])
    result = collections.OrderedDict()
    for field in obj._fields:
        if field.ttype == "ignore":
            continue
        if field.kind == "record":
            result.update(struct_vars(ctx, field.__get__(obj), ptype, trail))
            continue
        try:
            ok, allowedit = struct_perm_check(ctx, ptype, trail, field)
        except PermissionDenied as e:
            if not field.skipfailperm:
                logger.debug("StructVars: %s - permcheck: %s", field.name, e)
            continue
        if not ok:
            continue
        result[field.fname] = field.ttype
    return result


### HTML snippets

def pfform_keyval(kvs, val):
    """Return the display value of key val"""
    if kvs is None:
        return val
    for key, display in kvs:
        if str(key) == val:
            return str(display)
    return val


def pfform_select(kvs, default, idpfx, fname, opts):
    t = '<select id="%s%s" name="%s"%s>\n' % (idpfx, fname, fname, opts)
    for key, val in kvs:
        key = escape(str(key))
        t += '<option value="%s"' % key
        if default == key:
            t += " selected"
        t += ">%s</option>\n" % escape(str(val))
    t += "</select>\n"
    return t


def pfform_hidden(idpfx, fname, val):
    return '<input id="%s%s" name="%s" type="hidden" value="%s" />' % (
        idpfx, fname, fname, val)


def pfform_mask(masknum, idpfx, fname):
    if masknum == 0:
        return ""
    id = idpfx + fname + ".hide"
    if masknum != 1:
        id += str(masknum)
    return ('<input type="checkbox" id="%s" class="hidebox" />\n'
            '<label for="%s" class="hidebox fakebutton noselect"></label>\n'
            '<div class="hidebox">\n' % (id, id))


def pfform_masktail(masknum):
    if masknum == 0:
        return ""
    return "</div>\n"


def pfform_string(client, kvs, val, idpfx, fname, ttype, opts, min, max,
                  allowedit, masknum):
    """Render a string input

    With more than one option it is a select box when editable, a
    hidden input plus a read-only rendering of the value otherwise.
    Multi-line strings become a textarea.
    """
    t = ""
    if kvs is not None and len(kvs) > 1:
        if allowedit:
            return pfform_select(kvs, val, idpfx, fname, opts)
        t += pfform_hidden(idpfx, fname, escape(val))
        fname += ".readonly"

    # a single option only prettifies the value
    val = escape(pfform_keyval(kvs, val))

    if ttype == "string" and "\n" in val:
        ttype = "text"

    t += pfform_mask(masknum, idpfx, fname)

    if ttype == "text":
        t += '<textarea id="%s%s" name="%s"%s>%s</textarea>\n' % (
            idpfx, fname, fname, opts, val)
        t += pfform_masktail(masknum)
        return t

    t += '<input id="%s%s" name="%s"' % (idpfx, fname, fname)
    if ttype == "string":
        t += ' type="text" '
    else:
        t += ' type="%s" ' % ttype
    t += ' value="%s" ' % val
    t += opts

    if min or max:
        if not min:
            min = "0"
        t += ' pattern=".{%s,%s}"' % (client.config.cfg_lookup(min),
                                      client.config.cfg_lookup(max))

    t += " />\n"
    t += pfform_masktail(masknum)
    return t


def pfform_number(kvs, val, idpfx, fname, ttype, opts, mint, maxt, allowedit,
                  masknum):
    t = ""
    if kvs is not None and len(kvs) > 1:
        if allowedit:
            return pfform_select(kvs, val, idpfx, fname, opts)
        t += pfform_hidden(idpfx, fname, escape(val))
        fname += ".readonly"

    val = escape(pfform_keyval(kvs, val))

    if kvs is not None and len(kvs) > 1:
        ttype = "string"
    elif ttype != "range":
        ttype = "number"

    if not mint:
        mint = "min=0 "

    t += pfform_mask(masknum, idpfx, fname)
    t += '<input id="%s%s" name="%s" type="%s" value="%s" %s%s%s />\n' % (
        idpfx, fname, fname, ttype, val, mint, maxt, opts)
    t += pfform_masktail(masknum)
    return t


def pfform_bool(val, fname, idpfx, opts, allowedit):
    """Render a checkbox

    A read-only checkbox is disabled, which keeps it from being
    submitted; a hidden input carries its value instead.
    """
    t = "<input "
    if allowedit:
        t += 'name="%s" id="%s%s" ' % (fname, idpfx, fname)
    t += 'type="checkbox"'
    if val:
        t += ' checked="checked"'
    if not allowedit:
        t += ' disabled="disabled"'
    t += opts
    t += " />\n"

    if not allowedit:
        t += '<input name="%s" id="%s%s" type="hidden" value="%s" />\n' % (
            fname, idpfx, fname, val and "on" or "off")
    return t


def pfform_submit(val, cls=""):
    t = '<input id="submit" name="submit" type="submit" value="%s"' % (
        escape(val))
    if cls:
        t += ' class="%s"' % escape(cls)
    t += " />\n"
    return t


def pfform_label(idpfx, fname, label, ttype):
    t = '<label for="%s%s">' % (idpfx, fname)
    if label and ttype not in ("submit", "note", "widenote"):
        t += "%s" % escape(label)
        if not label.endswith("?"):
            t += ":"
    else:
        t += "&nbsp;"
    t += "</label>\n"
    return t


def pfform_head(client, multipart):
    o = '<form class="styled_form" method="post"'
    if multipart:
        o += ' enctype="multipart/form-data"'
    o += ">\n"
    o += "<fieldset>\n"
    o += csrf.csrf_input(client, "", "post")
    o += "<ul>\n"
    return o


def pfform_tail():
    return "</ul>\n</fieldset>\n</form>\n"


def _section_close():
    return "</ul>\n</fieldset>\n</li>\n"


### Rendering

class _Form:
    """What the rendering of one (nested) record produced"""

    def __init__(self):
        self.o = ""
        self.buttons = ""
        self.neditable = 0
        self.subs = []
        self.multipart = False

    def merge(self, other):
        self.o += other.o
        self.buttons += other.buttons
        self.neditable += other.neditable
        self.subs.extend(other.subs)
        self.multipart = self.multipart or other.multipart


def _call(trail, func, oname, field, *args):
    """Call func, a callable or a method name looked up on the trail

    Returns (found, result).
    """
    if callable(func):
        return True, func(*args)
    holder = find_on_trail(trail, func)
    if holder is None:
        return False, None
    try:
        return True, getattr(holder, func)(*args)
    except Exception as e:
        raise FormRenderError("%s Field '%s' function %s() failed: %s"
                              % (oname, field.name, func, e))


def _options(trail, oname, field):
    context = None
    holder = find_on_trail(trail, "object_context")
    if holder is not None:
        context = holder.object_context()

    found, kvs = _call(trail, field.options, oname, field, context)
    if not found:
        raise FormRenderError("Keyval function %s() not found"
                              % field.options)
    return [(k, v) for k, v in kvs]


def pfform_record(client, state, idpfx, trail, obj, ptype):
    """Render the fields of obj, returning a _Form

    state carries the open section between (nested) records.
    """
    if not isinstance(obj, Record):
        raise FormRenderError("Error: parameter is not a record but '%s'"
                              % type(obj).__name__)

    trail = [obj] + trail
    idpfx += type(obj).__name__ + "-"
    oname = trail_name(trail)

    res = _Form()
    hides = collections.OrderedDict()

    for field in obj._fields:
        ttype = field.ttype
        if ttype == "ignore":
            continue

        value = field.__get__(obj)

        if field.kind == "record":
            res.merge(pfform_record(client, state, idpfx, trail, value,
                                    ptype))
            continue

        issubform = False
        opts = ""
        fname = field.fname

        if field.visible is not None:
            found, visible = _call(trail, field.visible, oname, field, fname)
            if not found:
                logger.error("Object %s Field %s has visible function %s "
                             "defined but object does not have that "
                             "function", oname, field.name, field.visible)
            elif not isinstance(visible, bool):
                raise FormRenderError("%s Field '%s' function %s() return "
                                      "failed: not a bool"
                                      % (oname, field.name, field.visible))
            elif not visible:
                continue

        try:
            ok, allowedit = struct_perm_check(client, ptype, trail, field)
        except PermissionDenied as e:
            if field.skipfailperm:
                continue
            raise FormRenderError("Error: Field '%s:%s' has invalid "
                                  "permissions: %s" % (oname, fname, e))
        if not ok:
            continue

        label = field.label
        if not label:
            continue
        label = translate(client, trail, label)

        kvs = None
        if field.options is not None:
            kvs = _options(trail, oname, field)

        hint = translate(client, trail, field.hint)
        placeholder = translate(client, trail, field.placeholder)

        min = client.config.cfg_lookup(field.min)
        max = client.config.cfg_lookup(field.max)

        if not field.formedit:
            allowedit = False

        masknum = 0
        if field.mask:
            masknum = 1

        # a single option can not be changed
        if kvs is not None and len(kvs) == 1:
            allowedit = False

        if not allowedit:
            opts += " " + PFFORM_READONLY

        if field.required:
            opts += " required"

        if field.htmlclass:
            opts += ' class="%s"' % escape(field.htmlclass)

        if placeholder:
            placeholder = client.config.cfg_lookup(placeholder)
            opts += ' placeholder="%s"' % escape(placeholder)

        minmax = ""
        mint = ""
        if min:
            mint = "min=%s " % min
            minmax += "minimum: " + min
        maxt = ""
        if max:
            maxt = "max=%s " % max
            if minmax:
                minmax += ", "
            minmax += "maximum: " + max

        if state.section != field.section:
            if state.section:
                res.o += _section_close()
            state.section = field.section
            if state.section:
                res.o += "<li>\n<fieldset>\n<legend>%s</legend>\n<ul>\n" % (
                    escape(state.section))

        if ttype == "hidden":
            # appended at the end
            hides[fname] = value or label
            continue

        # no buttons on forms that can not be edited
        if ttype == "submit" and res.neditable == 0:
            continue

        t = "<li>\n"
        t += pfform_label(idpfx, fname, label, ttype)

        if field.kind == "string":
            if ttype in ("string", "tel", "email", "submit", "password",
                         "text"):
                val = label if ttype == "submit" else str(value or "")
                if val == "" and field.omitempty:
                    t = ""
                else:
                    t += pfform_string(client, kvs, val, idpfx, fname, ttype,
                                       opts, min, max, allowedit, masknum)

            elif ttype == "bool":
                t += '<input name="%s" id="%s%s" type="checkbox"' % (
                    fname, idpfx, fname)
                if is_true(value or ""):
                    t += ' checked="checked"'
                t += opts
                t += " />\n"

            elif ttype in ("note", "widenote"):
                val = escape(pfform_keyval(kvs, str(value or "")))
                if val == "":
                    val = field.content
                if val == "" and field.omitempty:
                    t = ""
                else:
                    # widenotes take the space of the label too
                    if ttype == "widenote":
                        t = "<li>"
                    t += '<span id="%s%s"%s>%s</span>\n' % (idpfx, fname,
                                                            opts, val)

            elif ttype == "file":
                if allowedit:
                    t += '<input type="file" id="%s%s" name="%s" %s>\n' % (
                        idpfx, fname, fname, opts)
                    res.multipart = True
                else:
                    # no uploader when not editable
                    t = ""

            else:
                raise FormRenderError("Field '%s', unknown pftype: '%s'"
                                      % (fname, ttype))

        elif field.kind == "bool":
            t += pfform_bool(bool(value), fname, idpfx, opts, allowedit)

        elif field.kind == "number":
            if minmax:
                hint = hint and "%s (%s)" % (hint, minmax) or minmax
            val = "" if value is None else str(value)
            t += pfform_number(kvs, val, idpfx, fname, ttype, opts, mint,
                               maxt, allowedit, masknum)

        elif field.kind == "time":
            val = ""
            if isinstance(value, (datetime.datetime, datetime.date)):
                val = value.strftime("%Y-%m-%dT%H:%M")
            elif value:
                val = str(value)
            t += '<input id="%s%s" name="%s" type="datetime-local" ' \
                 'value="%s"%s />\n' % (idpfx, fname, fname, escape(val),
                                        opts)

        elif field.kind == "map":
            if field.checkboxmode:
                t += "<ul>\n"
                for key, val in kvs or []:
                    t += '<li>\n<input name="%s[]" id="%s%s" ' \
                         'type="checkbox" value="%s" %s /> %s</li>\n' % (
                             fname, idpfx, fname, escape(str(key)), opts,
                             escape(str(val)))
                t += "</ul>\n"
            else:
                # the current entries are all selected
                t += '<select id="%s%s" name="%s" multiple >\n' % (
                    idpfx, fname, fname)
                for key, val in (value or {}).items():
                    t += '<option value="%s" selected>%s</option>\n' % (
                        escape(str(key)), escape(str(val)))
                for key, val in kvs or []:
                    t += '<option value="%s">%s</option>\n' % (
                        escape(str(key)), escape(str(val)))
                t += "</select>\n"

        elif field.kind == "slice":
            t = '<div class="styled_form">\n' + t

            # each entry gets its own form with a Remove button
            rmb_pre = ""
            rmb_post = ""
            if allowedit:
                rmb_pre = pfform_head(client, False)
                rmb_post = pfform_submit("Remove", "deny") + pfform_tail()

            issubform = True
            t += "<ul>\n"

            for k, item in enumerate(value or []):
                masknumber = masknum
                if masknum > 0:
                    masknumber += k

                t += "<li>"
                t += rmb_pre
                if field.item == "string":
                    t += pfform_string(client, kvs, str(item), idpfx, fname,
                                       "string", opts + " " + PFFORM_READONLY,
                                       min, max, False, masknumber)
                else:
                    t += pfform_number(kvs, str(item), idpfx, fname, "number",
                                       opts + " " + PFFORM_READONLY, mint,
                                       maxt, False, masknumber)
                t += rmb_post
                t += "</li>\n"
                t += "\n"

            if allowedit:
                t += "<li >\n"
                t += pfform_head(client, False)
                if field.item == "string":
                    t += pfform_string(client, kvs, "", idpfx, fname,
                                       "string", opts, min, max, True,
                                       masknum)
                else:
                    t += pfform_number(kvs, "", idpfx, fname, "number", opts,
                                       mint, maxt, True, masknum)
                t += pfform_submit("Add", "allow")
                t += pfform_tail()
                t += "</li>\n"
                t += "\n"

            t += "</ul>\n"
            t += "</div>\n"

        else:
            raise FormRenderError("Field '%s' is an unknown kind %s"
                                  % (fname, field.kind))

        if t:
            if hint:
                t += '<span class="form_hint">%s</span>\n' % escape(hint)
            t += "</li>\n\n"

            # submit buttons go at the end
            if ttype == "submit":
                res.buttons += t
            else:
                if allowedit:
                    res.neditable += 1
                if issubform:
                    res.subs.append(t)
                else:
                    res.o += t

    for fname, val in hides.items():
        res.o += pfform_hidden(idpfx, fname, escape(val))

    return res


class _State:
    def __init__(self):
        self.section = ""


def _status_value(m, name):
    if m is None:
        return ""
    if isinstance(m, dict):
        value = m.get(name)
    else:
        value = getattr(m, name, None)
    return value or ""


def pfform(client, obj, m, editable):
    """Render obj as HTML form, the template function "pfform"

    m holds the "message" and "error" to show, editable selects an
    update form instead of a read-only one.
    """
    if obj is None:
        return Markup(escape("No object provided"))

    idpfx = type(obj).__name__ + "-"

    ptype = PTYPE_READ
    if editable:
        ptype = PTYPE_UPDATE

    state = _State()
    try:
        res = pfform_record(client, state, "", [], obj, ptype)
    except FormRenderError as e:
        logger.error("pfform: %s", e)
        return Markup(escape("Problem encountered while rendering template"))

    o = res.o
    buttons = res.buttons
    if editable and buttons == "" and res.neditable > 0:
        buttons = pfform_string(client, None, "Update", "update", "submit",
                                "submit", "", "", "", False, 0)
    o += buttons

    if state.section:
        o += _section_close()

    for name, cls in (("message", "okay"), ("error", "error")):
        fvalue = _status_value(m, name)
        if fvalue:
            id = escape(idpfx + name)
            o += '<li class="%s">\n' % cls
            o += '<label for="%s">&nbsp;</label>\n' % id
            o += '<span id="%s">\n' % id
            o += "%s" % escape(fvalue)
            o += "</span>\n"
            o += "</li>\n"

    o += pfform_tail()

    # slices have their own add/remove forms
    for sub in res.subs:
        o += "<hr />\n"
        o += sub

    o = pfform_head(client, res.multipart) + o
    return Markup(o)

# vim: set filetype=python sts=4 sw=4 et si :
