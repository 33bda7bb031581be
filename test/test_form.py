import datetime
import unittest

from pitchfork.cgi import form
from pitchfork.cgi.form import (Bool, DateTime, Hidden, Ignore, Nested,
                                Note, Number, Password, Record, String,
                                StringList, Submit)

from .portal_base import makeClient, sessionToken, setupPortal


class Address(Record):
    street = String(label="Street")
    city = String(label="City", col="town")


class Person(Record):
    name = String(label="Name", hint="Your name", required=True,
                  min="CFG_USERNAME_MIN_LENGTH",
                  placeholder="CFG_USERNAME_EXAMPLE")
    secret = Password(label="Secret", mask=True)
    age = Number(label="Age", min=1, max=150)
    active = Bool(label="Active")
    born = DateTime(label="Born")
    address = Nested(Address)
    comeback = Hidden(label="Comeback")
    remark = Note(label="Remark", omitempty=True)
    admin_only = String(label="Admin", pfget="sysadmin", pfset="sysadmin",
                        skipfailperm=True)
    internal = Ignore()
    unlabeled = String()
    button = Submit(label="Save")


class Employee(Person):
    badge = String(label="Badge", formedit=False)


class Colored(Record):
    color = String(label="Color", options="colors")
    shade = String(label="Shade", options="shades")
    extra = String(label="Extra", visible="show_extra")

    def colors(self, context):
        return [("red", "Red"), ("blue", "Blue")]

    def shades(self, context):
        return [("dark", "Dark")]

    def show_extra(self, fname):
        return False


class Quoted(Record):
    size = String(label="Size <cm>", htmlclass='wide" onclick="x')


class Broken(Record):
    extra = String(label="Extra", visible="not_a_bool")

    def not_a_bool(self, fname):
        return "yes"


class Tagged(Record):
    tags = StringList(label="Tags")


class Sectioned(Record):
    a = String(label="A", section="First")
    b = String(label="B", section="First")
    c = String(label="C", section="Second")


class RecordTestCase(unittest.TestCase):
    def testFieldOrder(self):
        self.assertEqual([f.name for f in Employee._fields],
                         ["name", "secret", "age", "active", "born",
                          "address", "comeback", "remark", "admin_only",
                          "internal", "unlabeled", "button", "badge"])

    def testDefaults(self):
        p = Person()
        self.assertEqual(p.name, "")
        self.assertEqual(p.age, 0)
        self.assertIs(p.active, False)
        self.assertIsNone(p.born)
        self.assertIsNone(p.internal)
        self.assertIsInstance(p.address, Address)
        a, b = Tagged(), Tagged()
        a.tags.append("x")
        self.assertEqual(b.tags, [])

    def testKeywords(self):
        p = Person(name="Bob", age=42)
        self.assertEqual((p.name, p.age), ("Bob", 42))
        self.assertRaises(TypeError, Person, nosuchfield=1)

    def testFieldLookup(self):
        self.assertIs(Person.field("name"), Person.name)
        # nested records, input names from col
        self.assertIs(Person.field("town"), Address.city)
        self.assertIsNone(Person.field("city"))
        self.assertIsNone(Person.field("nothing"))

    def testBooleans(self):
        for v in ("yes", "TRUE", "on", "1", True):
            self.assertEqual(form.normalize_boolean(v), "yes")
        for v in ("no", "off", "", "0", "maybe", False):
            self.assertEqual(form.normalize_boolean(v), "no")


class RenderTestCase(unittest.TestCase):
    def setUp(self):
        self.portal = setupPortal()
        self.cui = makeClient(self.portal, "/user/alice/")

    def sysadminClient(self):
        tok = sessionToken(self.portal, "root", sysadmin=True)
        cui = makeClient(self.portal, "/user/root/",
                         headers={"Authorization": "Bearer " + tok})
        cui.init_token()
        return cui

    def testStructVars(self):
        fields = form.struct_vars(self.cui, Person(), form.PTYPE_UPDATE)
        self.assertEqual(list(fields.items()), [
            ("name", "string"), ("secret", "password"), ("age", "int"),
            ("active", "bool"), ("born", "time"), ("street", "string"),
            ("town", "string"), ("comeback", "hidden"), ("remark", "note"),
            ("unlabeled", "string"), ("button", "submit")])

        fields = form.struct_vars(self.sysadminClient(), Person(),
                                  form.PTYPE_UPDATE)
        self.assertIn("admin_only", fields)

    def testEditable(self):
        html = form.pfform(self.cui, Person(name="Bob", comeback="/x/"),
                           {"message": "All good", "error": ""}, True)
        self.assertTrue(html.startswith('<form class="styled_form" '
                                        'method="post">\n<fieldset>\n'))
        self.assertIn('name="pfCSRF"', html)
        self.assertIn('<label for="Person-name">Name:</label>', html)
        self.assertIn('value="Bob"', html)
        self.assertIn(' required placeholder="john.doe" pattern=".{3,}"',
                      html)
        self.assertIn('<span class="form_hint">Your name</span>', html)
        self.assertIn('class="hidebox"', html)
        self.assertIn('type="number" value="0" min=1 max=150', html)
        self.assertIn('<span class="form_hint">minimum: 1, maximum: 150'
                      '</span>', html)
        self.assertIn('<input name="active" id="Person-active" '
                      'type="checkbox" />', html)
        self.assertIn('type="datetime-local" value=""', html)
        self.assertIn('id="Person-Address-street"', html)
        self.assertIn('name="town"', html)
        self.assertIn('<input id="Person-comeback" name="comeback" '
                      'type="hidden" value="/x/" />', html)
        self.assertIn('value="Save"', html)
        self.assertIn('<li class="okay">', html)
        self.assertNotIn('class="error"', html)
        self.assertNotIn("Remark", html)
        self.assertNotIn("Admin", html)
        self.assertNotIn("unlabeled", html)
        self.assertTrue(html.endswith("</ul>\n</fieldset>\n</form>\n"))

    def testSubmitIsLast(self):
        html = form.pfform(self.cui, Employee(), None, True)
        self.assertTrue(html.index('value="Save"') > html.index("Badge"))

    def testReadOnly(self):
        born = datetime.datetime(2001, 2, 3, 4, 5)
        html = form.pfform(self.cui, Employee(name="Bob", active=True,
                                              born=born, remark="Hi",
                                              badge="B1"),
                           None, False)
        self.assertIn(" readonly", html)
        # no buttons on read-only forms
        self.assertNotIn('value="Save"', html)
        self.assertNotIn('value="Update"', html)
        self.assertIn('disabled="disabled"', html)
        self.assertIn('<input name="active" id="Employee-active" '
                      'type="hidden" value="on" />', html)
        self.assertIn('value="2001-02-03T04:05"', html)
        self.assertIn('<span id="Employee-remark" readonly>Hi</span>', html)

    def testFormEditFalse(self):
        html = form.pfform(self.cui, Employee(badge="B1"), None, True)
        self.assertIn('value="B1"  readonly', html)

    def testUpdateButton(self):
        html = form.pfform(self.cui, Address(street="Main"), None, True)
        self.assertIn('value="Update"', html)
        html = form.pfform(self.cui, Address(street="Main"), None, False)
        self.assertNotIn('value="Update"', html)

    def testErrorMessage(self):
        class Status:
            message = ""
            error = "It <broke>"
        html = form.pfform(self.cui, Address(), Status(), True)
        self.assertIn('<li class="error">', html)
        self.assertIn("It &lt;broke&gt;", html)
        self.assertIn('<span id="Address-error">\nIt &lt;broke&gt;</span>',
                      html)

    def testLabelAndClassEscaped(self):
        html = form.pfform(self.cui, Quoted(size="10"), None, True)
        self.assertIn('<label for="Quoted-size">Size &lt;cm&gt;:</label>',
                      html)
        self.assertIn('class="wide&#34; onclick=&#34;x"', html)
        self.assertNotIn('onclick="x"', html)

    def testOptions(self):
        html = form.pfform(self.cui, Colored(color="blue", shade="dark"),
                           None, True)
        self.assertIn('<select id="Colored-color" name="color">', html)
        self.assertIn('<option value="blue" selected>Blue</option>', html)
        self.assertIn('<option value="red">Red</option>', html)
        # a single option is shown, not selectable
        self.assertIn('value="Dark"  readonly', html)
        self.assertNotIn("Extra", html)

    def testOptionsReadOnly(self):
        html = form.pfform(self.cui, Colored(color="blue"), None, False)
        self.assertIn('<input id="Colored-color" name="color" '
                      'type="hidden" value="blue" />', html)
        self.assertIn('name="color.readonly"', html)
        self.assertIn('value="Blue"', html)

    def testVisibleNotBool(self):
        html = form.pfform(self.cui, Broken(), None, True)
        self.assertEqual(html, "Problem encountered while rendering "
                               "template")

    def testNoObject(self):
        self.assertEqual(form.pfform(self.cui, None, None, True),
                         "No object provided")
        self.assertEqual(form.pfform(self.cui, object(), None, True),
                         "Problem encountered while rendering template")

    def testSliceSubForms(self):
        html = form.pfform(self.cui, Tagged(tags=["a", "b"]), None, True)
        head, subs = html.split("<hr />\n", 1)
        self.assertIn("<fieldset>", head)
        self.assertNotIn("Remove", head)
        self.assertEqual(subs.count('value="Remove"'), 2)
        self.assertEqual(subs.count('value="Add"'), 1)
        self.assertIn('value="a"', subs)
        self.assertIn('value="b"', subs)

    def testSliceReadOnly(self):
        html = form.pfform(self.cui, Tagged(tags=["a"]), None, False)
        self.assertNotIn("Remove", html)
        self.assertNotIn('value="Add"', html)

    def testSections(self):
        html = form.pfform(self.cui, Sectioned(), None, True)
        self.assertEqual(html.count("<legend>"), 2)
        self.assertIn("<legend>First</legend>", html)
        self.assertIn("<legend>Second</legend>", html)
        self.assertTrue(html.index("<legend>Second</legend>") >
                        html.index('name="b"'))

    def testPermissions(self):
        html = form.pfform(self.sysadminClient(), Person(), None, True)
        self.assertIn("Admin:", html)

    def testTranslate(self):
        class Translated(Record):
            name = String(label="Name")

            def translate(self, text, lang):
                return text.upper()
        html = form.pfform(self.cui, Translated(), None, True)
        self.assertIn("NAME:", html)

    def testPermCheckHook(self):
        class Hooked(Record):
            shown = String(label="Shown")
            hidden = String(label="Hidden")

            def perm_check(self, ctx, ptype, field):
                if field.name == "hidden":
                    return False, False
                return True, False
        html = form.pfform(self.cui, Hooked(), None, True)
        self.assertIn("Shown:", html)
        self.assertNotIn("Hidden:", html)
        self.assertIn(" readonly", html)

# vim: set filetype=python sts=4 sw=4 et si :
