"""Jinja2 templates of the web interface.

Templates live below the TEMPLATES directory and are named without
extension, "misc/error" is found as misc/error.html.  Handlers do not
render themselves: they call client.page_show(name, data) and the
template is executed when the response is flushed.

Functions made available to every template are registered with
Templates.register(); the form engine registers ``pfform`` and the CSRF
helpers ``csrf_form`` and ``csrf_form_param``.  They all take the
client (``ui`` in the page data) as first argument.
"""
__docformat__ = 'restructuredtext'

import jinja2
from markupsafe import Markup, escape


class NoTemplate(jinja2.TemplateNotFound):
    pass


def newline_br(value):
    """Escape value and turn newlines into <br />"""
    return Markup(str(escape(value)).replace("\n", "<br />\n"))


class Jinja2Loader:
    def __init__(self, dir):
        self.dir = dir
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(dir),
            extensions=['jinja2.ext.i18n'],
            autoescape=True
        )
        self._env.install_null_translations()
        self._env.filters["newline_br"] = newline_br

    def _find(self, tplname):
        for extension in ('', '.html', '.xml'):
            try:
                filename = tplname + extension
                return self._env.get_template(filename)
            except jinja2.TemplateNotFound:
                continue

        return None

    def check(self, tplname):
        return bool(self._find(tplname))

    def load(self, tplname):
        tpl = self._find(tplname)
        if tpl is None:
            raise NoTemplate(tplname, 'Template file "%s" not found in %s'
                             % (tplname, self.dir))
        return tpl

    def register(self, name, func):
        self._env.globals[name] = func


class Templates:
    """The template set of a portal

    Rendering errors propagate as jinja2.TemplateError (NoTemplate
    for unknown names), the client turns them into an error page.
    """

    def __init__(self, loader):
        self.loader = loader

    def register(self, name, func):
        """Make func callable from every template as name"""
        self.loader.register(name, func)

    def check(self, name):
        return self.loader.check(name)

    def render(self, name, data):
        return self.loader.load(name).render(data)


def get_templates(dir):
    """Return the Templates of dir with the portal's functions registered"""
    from pitchfork.cgi import csrf, form

    templates = Templates(Jinja2Loader(dir))
    templates.register("pfform", form.pfform)
    templates.register("csrf_form", csrf.csrf_form)
    templates.register("csrf_form_param", csrf.csrf_form_param)
    return templates

# vim: set filetype=python sts=4 sw=4 et si :
