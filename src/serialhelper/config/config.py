import enum
import os
import platform
from collections import namedtuple

from configobj import ConfigObj, ConfigObjError, flatten_errors
from configobj.validate import Validator

# The default extension for configuration files
config_extension = '.cfg'

LINE = 'line'
IDLE_TIMEOUT = 'idle-timeout'
FIXED_LENGTH = 'fixed-length'

# alternative names accepted for the framing kinds
framing_aliases = {
    LINE: LINE,
    'readline': LINE,
    'Readline': LINE,
    IDLE_TIMEOUT: IDLE_TIMEOUT,
    'timeout': IDLE_TIMEOUT,
    'InterByteTimeout': IDLE_TIMEOUT,
    FIXED_LENGTH: FIXED_LENGTH,
    'byte': FIXED_LENGTH,
    'ByteLength': FIXED_LENGTH,
}

# option names accepted by ConnectionConfig.from_dict, mapped to field names
option_aliases = {
    'reconnectInterval': 'reconnect_interval',
    'softReset': 'soft_reset',
    'parser': 'framing',
    'path': 'port',
    'baudRate': 'baud',
    'baudrate': 'baud',
}


class ConfigError(ValueError):
    """ Indicates an invalid connection configuration. """


class DebugLevel(enum.IntEnum):
    OFF = 0
    ON = 1
    VERBOSE = 2

    @classmethod
    def parse(cls, value):
        """
        >>> DebugLevel.parse(True)
        <DebugLevel.ON: 1>
        >>> DebugLevel.parse('verbose')
        <DebugLevel.VERBOSE: 2>
        >>> DebugLevel.parse(None)
        <DebugLevel.OFF: 0>
        """
        if isinstance(value, cls):
            return value
        if value is None or value is False:
            return cls.OFF
        if value is True:
            return cls.ON
        if isinstance(value, str):
            name = value.strip().lower()
            if name in ('verbose', '2'):
                return cls.VERBOSE
            if name in ('on', 'true', 'yes', '1'):
                return cls.ON
            if name in ('off', 'false', 'no', '0', ''):
                return cls.OFF
            raise ConfigError("unknown debug level '%s'" % value)
        try:
            return cls(min(int(value), cls.VERBOSE))
        except (TypeError, ValueError) as e:
            raise ConfigError("unknown debug level '%s'" % value) from e


def _positive_int(name, value, minimum=1):
    try:
        result = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError("%s must be an integer, not '%s'" % (name, value)) from e
    if result < minimum:
        raise ConfigError("%s must be at least %d, not %d" % (name, minimum, result))
    return result


def _flag(name, value):
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ('true', 'yes', 'on', '1'):
            return True
        if lowered in ('false', 'no', 'off', '0'):
            return False
        raise ConfigError("%s must be a boolean, not '%s'" % (name, value))
    return bool(value)


class FramingConfig(namedtuple('FramingConfig', 'kind delimiter interval length')):
    """
    Describes how the byte stream is split into records.
    :param kind: one of LINE, IDLE_TIMEOUT, FIXED_LENGTH
    :param delimiter: the line delimiter (line framing)
    :param interval: the idle time in milliseconds that ends a record (idle-timeout framing)
    :param length: the number of bytes in each record (fixed-length framing)
    """
    __slots__ = ()

    def __new__(cls, kind=LINE, delimiter='\n', interval=30, length=1):
        if kind not in (LINE, IDLE_TIMEOUT, FIXED_LENGTH):
            raise ConfigError("unknown framing '%s'" % kind)
        if not delimiter:
            raise ConfigError("the line delimiter must not be empty")
        return super().__new__(cls, kind, delimiter, _positive_int('interval', interval),
                               _positive_int('length', length))

    @classmethod
    def parse(cls, value):
        """
        Creates a FramingConfig from a mapping with keys type, delimiter, interval and length.
        Missing or unknown types select line framing. Falsy values select the defaults.

        >>> FramingConfig.parse({'type': 'InterByteTimeout', 'interval': 50}).kind
        'idle-timeout'
        >>> FramingConfig.parse(None).delimiter
        '\\n'
        """
        if isinstance(value, cls):
            return value
        value = value or {}
        kind = framing_aliases.get(value.get('type') or value.get('kind'), LINE)
        defaults = cls()
        return cls(kind,
                   value.get('delimiter') or defaults.delimiter,
                   value.get('interval') or defaults.interval,
                   value.get('length') or defaults.length)


class ConnectionConfig(namedtuple('ConnectionConfig', 'port baud autoreconnect reconnect_interval autoopen '
                                                      'debug framing soft_reset encoding')):
    """
    The immutable configuration of a serial connection.
    Use create() or from_dict() rather than the constructor, so that values are validated.
    """
    __slots__ = ()

    @classmethod
    def create(cls, port, baud, autoreconnect=True, reconnect_interval=3000, autoopen=True, debug=False,
               framing=None, soft_reset=False, encoding='utf-8'):
        if not port:
            raise ConfigError("a port is required")
        return cls(str(port),
                   _positive_int('baud', baud),
                   _flag('autoreconnect', autoreconnect),
                   _positive_int('reconnect_interval', reconnect_interval, 0),
                   _flag('autoopen', autoopen),
                   DebugLevel.parse(debug),
                   FramingConfig.parse(framing),
                   _flag('soft_reset', soft_reset),
                   encoding or 'utf-8')

    @classmethod
    def from_dict(cls, options):
        """
        Creates a configuration from a mapping of options. Both the field names and the camel-case
        option names (reconnectInterval, softReset, parser) are accepted. Options that are None
        take their default value.
        """
        kwargs = {}
        for key, value in options.items():
            name = option_aliases.get(key, key)
            if name not in cls._fields:
                raise ConfigError("unknown option '%s'" % key)
            if value is not None:
                kwargs[name] = value
        if 'port' not in kwargs or 'baud' not in kwargs:
            raise ConfigError("port and baud are required")
        return cls.create(**kwargs)

    def replace(self, **kwargs):
        """ returns a validated copy of this configuration with the given fields changed """
        values = self._asdict()
        values.update(kwargs)
        return self.create(**values)

    @property
    def reconnect_seconds(self):
        return self.reconnect_interval / 1000.0

    @property
    def summary(self):
        """
        >>> ConnectionConfig.create('/dev/ttyUSB0', 9600).summary
        '/dev/ttyUSB0 [9600bps]'
        """
        return "%s [%dbps]" % (self.port, self.baud)


# the schema applied to the [serial] section of configuration files
default_schema = """
[serial]
port = string()
baud = integer(min=1)
autoreconnect = boolean(default=True)
reconnect_interval = integer(min=0, default=3000)
autoopen = boolean(default=True)
debug = option('off', 'on', 'verbose', 'false', 'true', default='off')
soft_reset = boolean(default=False)
encoding = string(default='utf-8')
    [[framing]]
    type = option('line', 'idle-timeout', 'fixed-length', default='line')
    delimiter = string(default=None)
    interval = integer(min=1, default=30)
    length = integer(min=1, default=1)
""".splitlines()


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, subpart=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    configname = config_flavor(name, subpart)
    file = config_filename(configname, directory)
    return load_config_file_base(file, False)


def map_os_name(name):
    """
    >>> map_os_name('Windows')
    'windows'
    >>> map_os_name("Darwin")
    'osx'
    """
    name = name.lower()
    if name == 'darwin':
        name = 'osx'
    return name


def os_name():
    return map_os_name(platform.system())


def validate_config(config: ConfigObj, name):
    validator = Validator()
    result = config.validate(validator, preserve_errors=True)
    if result is not True:
        problems = []
        for sections, key, error in flatten_errors(config, result):
            location = '.'.join(sections + ([key] if key else []))
            problems.append("%s: %s" % (location, error or 'missing'))
        raise ConfigObjError("the config file %s failed validation: %s" % (name, ', '.join(problems)))
    return config


def load_config(name, directory, user_directory=None):
    """
    Loads all the configuration files that relate to the given name.
    Configurations are merged in this order, later values replacing earlier ones:
    - the default specialization (name.default.cfg)
    - the platform specialization (name.linux.cfg, name.osx.cfg, name.windows.cfg)
    - the user override (~/name.cfg)
    - the base configuration (name.cfg)
    The merged configuration is validated against name.schema.cfg when that exists,
    otherwise against the built-in schema.
    :param directory: the location of the configuration files
    :param user_directory: the location of the user override, the home directory by default
    :return: the validated ConfigObj
    """
    local_config = config_flavor_file(name, directory)
    default_config = config_flavor_file(name, directory, 'default')
    platform_config = config_flavor_file(name, directory, os_name())
    user_file = os.path.join(user_directory or os.path.expanduser('~'), name + config_extension)
    user_config = load_config_file_base(user_file, must_exist=False)

    schema_file = config_filename(config_flavor(name, 'schema'), directory)
    schema = schema_file if os.path.exists(schema_file) else default_schema
    config = ConfigObj(configspec=schema)
    config.merge(default_config)
    config.merge(platform_config)
    config.merge(user_config)
    config.merge(local_config)
    return validate_config(config, name)


def load_config_file(file):
    """ Loads and validates a single configuration file against the built-in schema. """
    config = ConfigObj(file, configspec=default_schema, file_error=True)
    return validate_config(config, file)


def connection_config(conf, section='serial') -> ConnectionConfig:
    """
    Converts a section of a validated configuration into a ConnectionConfig.
    """
    values = conf.get(section)
    if values is None:
        raise ConfigError("no [%s] section in the configuration" % section)
    options = {k: v for k, v in values.items() if k != 'framing'}
    framing = values.get('framing')
    if framing is not None:
        framing = {k: v for k, v in framing.items()}
        if framing.get('delimiter'):
            # configuration files hold escapes such as \r\n literally
            framing['delimiter'] = framing['delimiter'].encode('latin-1').decode('unicode_escape')
        options['framing'] = framing
    return ConnectionConfig.from_dict(options)
