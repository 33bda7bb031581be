# Pitchfork configuration support
#
__docformat__ = "restructuredtext"

import configparser
import ipaddress
import logging
import logging.config
import os
import secrets
import socket
import sys
import time

from pitchfork import logcontext

logger = logging.getLogger('pitchfork')

### Exceptions

class ConfigurationError(Exception):
    pass

class InvalidOptionError(ConfigurationError, KeyError, AttributeError):

    """Attempted access to non-existing configuration option

    Configuration options may be accessed as configuration object
    attributes or items.  So this exception instances also are
    instances of KeyError (invalid item access) and AttributeError
    (invalid attribute access).

    Constructor parameter: option name

    """

    def __str__(self):
        return "Unsupported configuration option: %s" % self.args[0]

class OptionValueError(ConfigurationError, ValueError):

    """Raised upon attempt to assign an invalid value to config option

    Constructor parameters: Option instance, offending value
    and optional info string.

    """

    def __str__(self):
        _args = self.args
        _rv = "Invalid value for %(option)s: %(value)r" % {
            "option": _args[0].name, "value": _args[1]}
        if len(_args) > 2:
            _rv += "\n".join(("",) + _args[2:])
        return _rv

class OptionUnsetError(ConfigurationError):

    """Raised when no Option value is available - neither set, nor default

    Constructor parameters: Option instance.

    """

    def __str__(self):
        return "%s is not set and has no default" % self.args[0].name

class UnsetDefaultValue:

    """Special object meaning that default value for Option is not specified"""

    def __str__(self):
        return "NO DEFAULT"

NODEFAULT = UnsetDefaultValue()

### Option classes

class Option:

    """Single configuration option.

    Options have following attributes:

        config
            reference to the containing Config object
        section
            name of the section in the .ini file
        setting
            option name in the .ini file
        default
            default option value
        description
            option description.  Makes a comment in the .ini file
        name
            "canonical name" of the configuration option.
            For items in the 'main' section this is uppercased
            'setting' name.  For other sections, the name is
            composed of the section name and the setting name,
            joined with underscore.

    The name is forced to be uppercase.
    The setting name is forced to lowercase.

    """

    class_description = None

    def __init__(self, config, section, setting,
        default=NODEFAULT, description=None
    ):
        self.config = config
        self.section = section
        self.setting = setting.lower()
        self.default = default
        self.description = description
        self.name = setting.upper()
        if section != "main":
            self.name = "_".join((section.upper(), self.name))
        # convert default to internal representation
        if default is NODEFAULT:
            _value = default
        else:
            _value = self.str2value(default)
        # value is private.  use get() and set() to access
        self._value = self._default_value = _value

    def str2value(self, value):
        """Return 'value' argument converted to internal representation"""
        return value

    def _value2str(self, value):
        """Return 'value' argument converted to external representation

        This is actual conversion method called only when value
        is not NODEFAULT.  Heirs with different conversion rules
        override this method, not the public .value2str().

        """
        return str(value)

    def value2str(self, value=NODEFAULT, current=0):
        """Return 'value' argument converted to external representation

        If 'current' is True, use current option value.

        """
        if current:
            value = self._value
        if value is NODEFAULT:
            return str(value)
        else:
            return self._value2str(value)

    def get(self):
        """Return current option value"""
        if self._value is NODEFAULT:
            raise OptionUnsetError(self)
        return self._value

    def set(self, value):
        """Update the value"""
        self._value = self.str2value(value)

    def reset(self):
        """Reset the value to default"""
        self._value = self._default_value

    def isdefault(self):
        """Return True if current value is the default one"""
        return self._value == self._default_value

    def isset(self):
        """Return True if the value is available (either set or default)"""
        return self._value is not NODEFAULT

    def __str__(self):
        return self.value2str(self._value)

    def __repr__(self):
        if self.isdefault():
            _format = "<%(class)s %(name)s (default): %(value)s>"
        else:
            _format = "<%(class)s %(name)s (default: %(default)s): %(value)s>"
        return _format % {
            "class": self.__class__.__name__,
            "name": self.name,
            "default": self.value2str(self._default_value),
            "value": self.value2str(self._value),
        }

    def format(self):
        """Return .ini file fragment for this option"""
        _desc_lines = []
        for _description in (self.description, self.class_description):
            if _description:
                _desc_lines.extend(_description.split("\n"))
        # comment out the setting line if there is no value
        if self.isset():
            _is_set = ""
        else:
            _is_set = "#"
        # values are read back with interpolation
        _rv = "# %(description)s\n# Default: %(default)s\n" \
            "%(is_set)s%(name)s = %(value)s\n" % {
                "description": "\n# ".join(_desc_lines),
                "default": self.value2str(self._default_value),
                "name": self.setting,
                "value": self.value2str(self._value).replace("%", "%%"),
                "is_set": _is_set
            }
        return _rv

    def load_ini(self, config):
        """Load value from ConfigParser object"""
        if config.has_option(self.section, self.setting):
            self.set(config.get(self.section, self.setting))

class BooleanOption(Option):

    """Boolean option: yes or no"""

    class_description = "Allowed values: yes, no"

    def _value2str(self, value):
        if value:
            return "yes"
        else:
            return "no"

    def str2value(self, value):
        if isinstance(value, str):
            _val = value.lower()
            if _val in ("yes", "true", "on", "1"):
                _val = 1
            elif _val in ("no", "false", "off", "0"):
                _val = 0
            else:
                raise OptionValueError(self, value, self.class_description)
        else:
            _val = value and 1 or 0
        return _val

class WordListOption(Option):

    """List of strings"""

    class_description = "Allowed values: comma-separated list of words"

    def _value2str(self, value):
        return ','.join(value)

    def str2value(self, value):
        if not isinstance(value, str):
            return list(value)
        return [word.strip() for word in value.split(',') if word.strip()]

class CIDRListOption(Option):

    """List of IP networks"""

    class_description = "Allowed values: comma-separated list of\n" \
        "IPv4 or IPv6 networks in CIDR notation, e.g. 192.0.2.0/24"

    def _value2str(self, value):
        return ','.join([str(net) for net in value])

    def str2value(self, value):
        if not isinstance(value, str):
            value = ','.join([str(net) for net in value])
        _nets = []
        for _word in value.split(','):
            _word = _word.strip()
            if not _word:
                continue
            try:
                _nets.append(ipaddress.ip_network(_word, strict=False))
            except ValueError:
                raise OptionValueError(self, value, self.class_description)
        return _nets

class FilePathOption(Option):

    """File or directory path name

    Paths may be either absolute or relative to the HOME.

    """

    class_description = "The path may be either absolute or relative\n" \
        "to the directory containing this config file."

    def get(self):
        _val = Option.get(self)
        if _val and not os.path.isabs(_val):
            _val = os.path.join(self.config["HOME"], _val)
        return _val

class IntegerNumberOption(Option):

    """Integer numbers"""

    def str2value(self, value):
        try:
            return int(value)
        except ValueError:
            raise OptionValueError(self, value, "Integer number required")

class NullableOption(Option):

    """Option that is set to None if its string value is one of NULL strings

    Default nullable strings list contains empty string only.
    There is constructor parameter allowing to specify different nullables.

    Conversion to external representation returns the first of the NULL
    strings list when the value is None.

    """

    NULL_STRINGS = ("",)

    def __init__(self, config, section, setting,
        default=NODEFAULT, description=None,
        null_strings=NULL_STRINGS
    ):
        self.null_strings = list(null_strings)
        Option.__init__(self, config, section, setting, default,
            description)

    def str2value(self, value):
        if value in self.null_strings:
            return None
        else:
            return value

    def _value2str(self, value):
        if value is None:
            return self.null_strings[0]
        else:
            return value

class NullableFilePathOption(NullableOption, FilePathOption):

    # .get() and class_description are from FilePathOption,
    get = FilePathOption.get
    class_description = FilePathOption.class_description
    # everything else taken from NullableOption (inheritance order)

class LogLevelOption(Option):

    """Logging level name"""

    class_description = "Allowed values: DEBUG, INFO, WARNING, ERROR"

    def str2value(self, value):
        _val = value.upper()
        if not isinstance(logging.getLevelName(_val), int):
            raise OptionValueError(self, value, self.class_description)
        return _val

class SecretOption(Option):

    """Token signing secret

    An empty value makes the process pick a random secret at startup;
    tokens then do not survive a restart.

    """

    class_description = "Use at least 32 characters. If unset a random\n" \
        "secret is generated every time the server starts."

    min_length = 32

    def str2value(self, value):
        if value and len(value) < self.min_length:
            raise OptionValueError(self, value,
                "Secret must be at least %d characters" % self.min_length)
        return value

    def _value2str(self, value):
        # never write the generated secret back to a config file
        if getattr(self, "_generated", None) == value:
            return ""
        return value

    def get(self):
        _val = Option.get(self)
        if not _val:
            _val = self._generated = self._value = secrets.token_hex(32)
            logger.warning("No JWT secret configured, using a random one")
        return _val

    def format(self):
        # the secret never goes into an autogenerated file
        _saved = self._value
        self._value = ""
        try:
            return Option.format(self)
        finally:
            self._value = _saved


SETTINGS = (
    ("main", (
        (Option, "sysname", "Pitchfork",
            "Name of this system. Shown in page titles, used as\n"
            "token issuer and as realm in WWW-Authenticate headers."),
        (Option, "nodename", socket.gethostname(),
            "Name of this node, recorded in the access log."),
        (Option, "public_url", "http://127.0.0.1:8333/",
            "Public URL of the portal, including a trailing slash."),
        (FilePathOption, "templates", "templates",
            "Path to the HTML templates directory."),
        (FilePathOption, "webroot", "webroot",
            "Path to the directory holding static files\n"
            "(favicon.ico, css, gfx, js, robots.txt)."),
        (WordListOption, "css", "style,form",
            "Stylesheets (names below webroot/css without extension)\n"
            "included in every page."),
        (WordListOption, "javascript", "",
            "Scripts (names below webroot/js without extension)\n"
            "included in every page."),
        (Option, "timeformat", "%Y-%m-%d %H:%M",
            "strftime() format of times rendered in pages.\n"
            "Percent signs must be doubled in this file."),
        (Option, "useragent", "Pitchfork",
            "User-Agent sent on outgoing HTTP requests."),
        (BooleanOption, "noindex", "yes",
            "Ask search engines not to index this site."),
        (IntegerNumberOption, "username_min_length", "3",
            "Minimum length of a username (form slot CFG_USERNAME_MIN_LENGTH)."),
        (Option, "username_example", "john.doe",
            "Example username (form slot CFG_USERNAME_EXAMPLE)."),
        (BooleanOption, "debug", "no",
            "Debug mode: include decoded CSRF claims in forms."),
    )),
    ("web", (
        (Option, "http_host", "127.0.0.1",
            "Host name used when the request does not provide one."),
        (IntegerNumberOption, "http_port", "8333",
            "TCP port the standalone server listens on."),
        (Option, "cookie_name", "_pitchfork",
            "Name of the session cookie."),
        (BooleanOption, "cookie_secure", "yes",
            "Mark session cookies Secure. Only disable for development\n"
            "over plain HTTP."),
        (Option, "csp", "default-src 'self'; img-src 'self' data:",
            "Content-Security-Policy header sent with every response."),
        (CIDRListOption, "xff_trusted_cidr", "127.0.0.1/8,::1/128",
            "Proxies whose X-Forwarded-For entries are trusted."),
        (CIDRListOption, "sysadmin_restrict_cidr", "",
            "If set, SysAdmin rights are only effective from these\n"
            "networks. Loopback addresses are always allowed."),
        (BooleanOption, "enable_cli", "yes",
            "Allow logged in users to reach the web CLI."),
        (BooleanOption, "enable_api", "yes",
            "Allow Bearer token callers to reach the API."),
        (BooleanOption, "enable_oauth", "yes",
            "Enable the OAuth2 endpoints."),
    )),
    ("jwt", (
        (SecretOption, "secret", "",
            "Secret used to sign session, CSRF and OAuth2 tokens (HS256)."),
        (IntegerNumberOption, "token_expiration_minutes", "20",
            "Lifetime of a session token in minutes."),
        (IntegerNumberOption, "token_refresh_minutes", "10",
            "A token expiring within this many minutes is refreshed."),
        (IntegerNumberOption, "csrf_expiration_minutes", "60",
            "Lifetime of a CSRF token in minutes."),
        (IntegerNumberOption, "invalid_check_interval", "300",
            "Seconds between sweeps of the invalidated token cache."),
    ), "Token settings"),
    ("iptrk", (
        (IntegerNumberOption, "max", "5",
            "Number of failures (bad CSRF tokens, failed logins)\n"
            "after which an address is blocked."),
        (IntegerNumberOption, "expire", "3600",
            "Seconds after the last failure when an entry is forgotten."),
        (IntegerNumberOption, "check_interval", "60",
            "Seconds between expiry sweeps."),
    ), "IP reputation tracking"),
    ("logging", (
        (FilePathOption, "config", "",
            "Path to configuration file for standard Python logging module.\n"
            "If this option is set, logging configuration is loaded\n"
            "from specified file; options 'filename' and 'level'\n"
            "in this section are ignored."),
        (FilePathOption, "filename", "",
            "Log file name for minimal logging facility built into Pitchfork.\n"
            "If no file name specified, log messages are written on stdout.\n"
            "If above 'config' option is set, this option has no effect."),
        (LogLevelOption, "level", "ERROR",
            "Minimal severity level of messages written to log file.\n"
            "If above 'config' option is set, this option has no effect."),
        (NullableFilePathOption, "access_log", "",
            "File receiving one JSON object per request.\n"
            "Leave empty to disable access logging."),
    )),
)

### Configuration classes

class Config:

    """Base class for configuration objects.

    Configuration options may be accessed as attributes or items
    of instances of this class.  All option names are uppercased.

    """

    # Config file name
    INI_FILE = "config.ini"

    # Object attributes that should not be taken as common configuration
    # options in __setattr__ (most of them are initialized in constructor):
    # builtin pseudo-option - package home directory
    HOME = "."
    # names of .ini file sections, in order
    sections = None
    # section comments
    section_descriptions = None
    # lists of option names for each section, in order
    section_options = None
    # mapping from option names to Option instances
    options = None
    # actual name of the config file.  set on load.
    filepath = os.path.join(HOME, INI_FILE)

    def __init__(self, config_path=None, layout=None, settings={}):
        """Initialize config instance

        Parameters:
            config_path:
                optional directory or file name of the config file.
                If passed, load the config after processing layout (if any).
                If config_path is a directory name, use default base name
                of the config file.
            layout:
                optional configuration layout, a sequence of
                section definitions suitable for .add_section()
            settings:
                optional setting overrides (dictionary).
                The overrides are applied after loading config file.

        """
        # initialize option containers:
        self.sections = []
        self.section_descriptions = {}
        self.section_options = {}
        self.options = {}
        # add options from the layout structure
        if layout:
            for section in layout:
                self.add_section(*section)
        if config_path is not None:
            self.load(config_path)
        for (name, value) in settings.items():
            self[name.upper()] = value

    def add_section(self, section, options, description=None):
        """Define new config section

        Parameters:
            section - name of the config.ini section
            options - a sequence of Option definitions.
                Each Option definition is a sequence
                containing class object and constructor
                parameters, starting from the setting name:
                setting, default, [description]
            description - optional section comment

        """
        if description or not (section in self.section_descriptions):
            self.section_descriptions[section] = description
        for option_def in options:
            klass = option_def[0]
            args = option_def[1:]
            option = klass(self, section, *args)
            self.add_option(option)

    def add_option(self, option):
        """Adopt a new Option object"""
        _section = option.section
        _name = option.setting
        if _section not in self.sections:
            self.sections.append(_section)
        _options = self._get_section_options(_section)
        if _name not in _options:
            _options.append(_name)
        # (section, name) key is used for writing .ini file
        self.options[(_section, _name)] = option
        self.options[option.name] = option

    def reset(self):
        """Set all options to their default values"""
        for _option in self.items():
            _option.reset()

    # option and section locators (used in option access methods)

    def _get_option(self, name):
        try:
            return self.options[name]
        except KeyError:
            raise InvalidOptionError(name)

    def _get_section_options(self, name):
        return self.section_options.setdefault(name, [])

    def _get_unset_options(self):
        """Return options that need manual adjustments

        Return value is a dictionary where keys are section
        names and values are lists of option names as they
        appear in the config file.

        """
        need_set = {}
        for option in self.items():
            if not option.isset():
                need_set.setdefault(option.section, []).append(option.setting)
        return need_set

    def _get_name(self):
        """Return the service name for config file heading"""
        return ""

    # file operations

    def load_ini(self, config_path, defaults=None):
        """Set options from config.ini file in given home_dir

        Parameters:
            config_path:
                directory or file name of the config file.
                If config_path is a directory name, use default
                base name of the config file
            defaults:
                optional dictionary of defaults for ConfigParser

        Note: if home_dir does not contain config.ini file,
        no error is raised.  Config will be reset to defaults.

        """
        if os.path.isdir(config_path):
            home_dir = config_path
            config_path = os.path.join(config_path, self.INI_FILE)
        else:
            home_dir = os.path.dirname(config_path)
        # parse the file
        config_defaults = {"HOME": home_dir}
        if defaults:
            config_defaults.update(defaults)
        config = configparser.ConfigParser(config_defaults)
        config.read([config_path])
        # .ini file loaded ok.
        self.HOME = home_dir
        self.filepath = config_path
        # set the options, starting from HOME
        self.reset()
        for option in self.items():
            option.load_ini(config)

    def load(self, home_dir):
        """Load configuration settings from home_dir"""
        self.load_ini(home_dir)

    def save(self, ini_file=None):
        """Write current configuration to .ini file

        'ini_file' argument, if passed, must be valid full path
        to the file to write.  If omitted, default file in current
        HOME is created.

        If the file to write already exists, it is saved with '.bak'
        extension.

        """
        if ini_file is None:
            ini_file = self.filepath
        _tmp_file = os.path.splitext(ini_file)[0]
        _bak_file = _tmp_file + ".bak"
        _tmp_file = _tmp_file + ".tmp"
        with open(_tmp_file, "wt") as _fp:
            _fp.write("# %s configuration file\n" % self._get_name())
            _fp.write("# Autogenerated at %s\n" % time.asctime())
            need_set = self._get_unset_options()
            if need_set:
                _fp.write("\n# WARNING! Following options need adjustments:\n")
                for section, options in need_set.items():
                    _fp.write("#  [%s]: %s\n" % (section, ", ".join(options)))
            for section in self.sections:
                comment = self.section_descriptions.get(section, None)
                if comment:
                    _fp.write("\n# ".join([""] + comment.split("\n")) + "\n")
                else:
                    # no section comment - just leave a blank line between sections
                    _fp.write("\n")
                _fp.write("[%s]\n" % section)
                for option in self._get_section_options(section):
                    _fp.write("\n" + self.options[(section, option)].format())
        if os.access(ini_file, os.F_OK):
            if os.access(_bak_file, os.F_OK):
                os.remove(_bak_file)
            os.rename(ini_file, _bak_file)
        os.rename(_tmp_file, ini_file)

    # container emulation

    def __len__(self):
        return len(self.items())

    def __getitem__(self, name):
        if name == "HOME":
            return self.HOME
        else:
            return self._get_option(name).get()

    def __setitem__(self, name, value):
        if name == "HOME":
            self.HOME = value
        else:
            self._get_option(name).set(value)

    def items(self):
        """Return the list of Option objects, in .ini file order

        Note that HOME is not included in this list
        because it is builtin pseudo-option, not a real Option
        object loaded from or saved to .ini file.

        """
        return [self.options[(_section, _name)]
            for _section in self.sections
            for _name in self._get_section_options(_section)
        ]

    def keys(self):
        """Return the list of "canonical" names of the options

        Unlike .items(), this list also includes HOME

        """
        return ["HOME"] + [_option.name for _option in self.items()]

    # attribute emulation

    def __setattr__(self, name, value):
        if (name in self.__dict__) or hasattr(self.__class__, name):
            self.__dict__[name] = value
        else:
            self._get_option(name).set(value)

    # Note: __getattr__ is not symmetric to __setattr__:
    #   self.__dict__ lookup is done before calling this method
    def __getattr__(self, name):
        return self[name]

class CoreConfig(Config):

    """Pitchfork instance configuration.

    Core config has a predefined layout (see the SETTINGS structure).
    Besides option access it knows how to set up logging and how to
    resolve the "CFG_" slots form fields refer to.

    """

    # prefix of configuration slots referenced from form fields
    CFG_PREFIX = "CFG_"

    def __init__(self, home_dir=None, settings={}):
        Config.__init__(self, home_dir, layout=SETTINGS, settings=settings)
        # load the config if home_dir given
        if home_dir is None:
            self.init_logging()

    def _get_name(self):
        return self["SYSNAME"]

    def reset(self):
        Config.reset(self)
        self.init_logging()

    def init_logging(self):
        _file = self["LOGGING_CONFIG"]
        if _file and os.path.isfile(_file):
            logging.config.fileConfig(_file)
            return

        _file = self["LOGGING_FILENAME"]
        # set file & level on the pitchfork logger
        logger = logging.getLogger('pitchfork')
        if _file:
            hdlr = logging.FileHandler(_file)
        else:
            hdlr = logging.StreamHandler(sys.stdout)
        formatter = logging.Formatter(
            '%(asctime)s %(trace_id)s %(levelname)s %(message)s')
        hdlr.setFormatter(formatter)
        hdlr.addFilter(logcontext.ContextFilter())
        for h in logger.handlers:
            h.close()
        logger.handlers = [hdlr]
        logger.setLevel(self["LOGGING_LEVEL"] or "ERROR")

    def load(self, home_dir):
        """Load configuration from path designated by home_dir argument"""
        self.load_ini(home_dir)
        self.init_logging()

    def cfg_lookup(self, value):
        """Resolve a "CFG_NAME" reference to the option value as string

        Values without the prefix are returned unchanged.
        """
        if not value.startswith(self.CFG_PREFIX):
            return value
        _option = self._get_option(value[len(self.CFG_PREFIX):].upper())
        return _option.value2str(current=1)

# vim: set et sts=4 sw=4 :
