"""Menus of the web interface and the link collections rendered from them.

A UIMenu maps the next segment of the request path to a handler.  The
client walks it with Client.ui_menu() (see pitchfork.cgi.client); the
same menu is rendered as sub menu of the page through to_link_col().
"""
__docformat__ = 'restructuredtext'

from markupsafe import Markup, escape

from pitchfork.exceptions import PermissionDenied
from pitchfork.security import PERM_HIDDEN, PERM_NONE, PERM_USER


class Link:
    """A rendered link: the URL, short and long description, sub links"""

    def __init__(self, link, desc, long="", subs=None):
        self.link = link
        self.desc = desc
        self.long = long
        self.subs = list(subs or [])

    def __repr__(self):
        return "<Link %s %r>" % (self.link, self.desc)

    def html(self):
        t = '<li><a href="%s"' % escape(self.link)
        if self.long:
            t += ' title="%s"' % escape(self.long)
        t += ">%s</a>" % escape(self.desc)
        if self.subs:
            t += "<ul>\n"
            for sub in self.subs:
                t += sub.html()
            t += "</ul>\n"
        t += "</li>\n"
        return Markup(t)

    __html__ = html


class LinkCol:
    """An ordered collection of links, the crumbs and menus of a page"""

    def __init__(self, links=None):
        self.links = list(links or [])

    def __len__(self):
        return len(self.links)

    def __iter__(self):
        return iter(self.links)

    def add(self, link):
        self.links.append(link)

    def pop(self):
        """Remove and return the last link, None when empty"""
        if not self.links:
            return None
        return self.links.pop()

    def last(self):
        if not self.links:
            return None
        return self.links[-1]

    def html(self, ul=False, cls=""):
        if not self.links:
            return Markup("")
        s = ""
        if ul:
            s += "<ul"
            if cls:
                s += ' class="%s"' % escape(cls)
            s += ">\n"
        for link in self.links:
            s += link.html()
        if ul:
            s += "</ul>"
        return Markup(s)


class UIMenuEntry:
    """A node of a web menu

    Parameters:
        uri - the path segment this entry matches.  Entries starting
            with '/' are absolute, '?' marks a query argument.
        desc - shown in menus and crumbs, entries without one are
            never rendered
        perms - permission bits, including the HIDDEN, NOCRUMB and
            NOSUBS modifiers
        fun - handler, called as fun(client)
        subs - list of UIMenuEntry rendered as drop-down below this one
    """

    def __init__(self, uri, desc, perms, fun=None, subs=None):
        self.uri = uri
        self.desc = desc
        self.perms = perms
        self.fun = fun
        self.subs = subs

    def __repr__(self):
        return "<UIMenuEntry %r>" % self.uri


class UIMenu:
    def __init__(self, entries=None):
        self.entries = list(entries or [])

    def __iter__(self):
        return iter(self.entries)

    def __len__(self):
        return len(self.entries)

    def _find(self, uri):
        for entry in self.entries:
            if entry.uri == uri:
                return entry
        return None

    def add(self, *entries):
        self.entries.extend(entries)

    def replace(self, uri, fun):
        entry = self._find(uri)
        if entry is not None:
            entry.fun = fun

    def remove(self, uri):
        entry = self._find(uri)
        if entry is not None:
            self.entries.remove(entry)

    def filter(self, allowed):
        """Only keep the entries whose uri is in allowed"""
        self.entries = [e for e in self.entries if e.uri in allowed]

    def add_perms(self, uri, perms):
        """OR perms into an entry, eg to hide it"""
        entry = self._find(uri)
        if entry is not None:
            entry.perms |= perms

    def del_perms(self, uri, perms):
        entry = self._find(uri)
        if entry is not None:
            entry.perms &= ~perms

    def set_perms(self, uri, perms):
        entry = self._find(uri)
        if entry is not None:
            entry.perms = perms

    def to_link_col(self, client, depth, pfx=""):
        """Return the LinkCol the client may see of this menu

        Relative links are made relative to the current page: they get
        pfx, or one '../' per level of depth when pfx is empty.
        """
        links = LinkCol()

        for entry in self.entries:
            if not entry.desc:
                continue

            try:
                client.check_perms("ToLinkColPfx(%s)" % entry.desc,
                                   entry.perms)
            except PermissionDenied:
                continue

            # "login" style entries are not for logged in users
            if entry.perms & PERM_NONE and entry.perms & PERM_USER and \
                    client.is_logged_in():
                continue

            if entry.perms & PERM_HIDDEN:
                continue

            link = entry.uri
            if link and not link.startswith('?'):
                link += "/"

            if entry.uri and not entry.uri.startswith('/'):
                if pfx:
                    link = pfx + link
                else:
                    link = "../" * depth + link

            subs = None
            if entry.subs is not None:
                subs = UIMenu(entry.subs).to_link_col(client, depth + 1,
                                                      link).links

            links.add(Link(link, entry.desc, subs=subs))

        return links

# vim: set filetype=python sts=4 sw=4 et si :
