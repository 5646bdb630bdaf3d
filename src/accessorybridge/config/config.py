import os
import platform

from configobj import ConfigObj, ConfigObjError, Section, flatten_errors
from validate import Validator

from accessorybridge.loop import DEFAULT_BUFFER_SIZE, DEFAULT_IDLE_DELAY

# The default extension for configuration files
config_extension = '.cfg'

# the directory holding the shipped defaults and schema
package_directory = os.path.dirname(__file__)


class SerialSettings:
    def __init__(self):
        self.baudrate = 115200
        self.port_match = '.*'


class BridgeSettings:
    """
    The settings used to build and run a bridge. The attribute names match the keys
    in the configuration files.
    """
    def __init__(self):
        self.buffer_size = DEFAULT_BUFFER_SIZE
        self.transform = 'acknowledge'
        self.zero_read = None           # None picks the policy suited to the transport
        self.idle_delay = DEFAULT_IDLE_DELAY
        self.read_timeout = None
        self.join_timeout = 5.0
        self.poll_interval = 0.5
        self.log_level = 'INFO'
        self.serial = SerialSettings()


def config_flavor(name, flavor=None):
    configname = name if not flavor else name + '.' + flavor
    return configname


def config_filename(name, directory=None):
    """
    Determines the location of a config file in the given directory.
    """
    config_file = os.path.join(directory or package_directory, name + config_extension)
    return config_file


def load_config_file_base(file, must_exist=True):
    """
    Loads a configuration file
    :param file:        The configuration file to load
    :param must_exist:  when True, the file must exist or an exception is thrown.
    :return: The ConfigObj instance for the file.
    """
    try:
        return ConfigObj(file, interpolation='Template', file_error=must_exist) \
            if must_exist or os.path.exists(file) else ConfigObj()
    except ConfigObjError as e:
        raise type(e)(str(e) + ' at ' + file)


def config_flavor_file(name, directory, flavor=None) -> ConfigObj:
    """
    Loads a specialization of a config file. The configuration file is expected to be named
    after the base, followed by a period and then the specialization, if the specialization is given,
    otherwise just the base name. A missing file gives an empty configuration.
    """
    file = config_filename(config_flavor(name, flavor), directory)
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


def load_config(name, directory=None, user_directory='~'):
    """
        Loads all the configuration files that relate to the given name.
        Configurations are merged in this order, later ones overriding earlier ones:
        - the shipped defaults (name.default.cfg)
        - the platform specialization (name.<os>.cfg)
        - the user override (~/name.cfg)
        - the local configuration (name.cfg in directory)
        The merged configuration is validated against the shipped schema (name.schema.cfg),
        which also supplies any values still missing.
    :param directory: the location of the local configuration file. None for no local configuration.
    :param user_directory: the location of the user override. None to skip it.
    :return: the validated ConfigObj
    """
    config = ConfigObj(configspec=config_filename(config_flavor(name, 'schema'), package_directory))
    config.merge(config_flavor_file(name, package_directory, 'default'))
    config.merge(config_flavor_file(name, package_directory, os_name()))
    if user_directory:
        config.merge(load_config_file_base(
            os.path.join(os.path.expanduser(user_directory), name + config_extension), must_exist=False))
    if directory:
        config.merge(config_flavor_file(name, directory))

    result = config.validate(Validator())
    if result is not True:
        errors = []
        for section_list, key, res in flatten_errors(config, result):
            path = '.'.join(section_list + [key] if key else section_list)
            errors.append("%s: %s" % (path, res if res is not False else 'missing'))
        raise ConfigObjError("the config file %s failed validation %s" % (name, ', '.join(errors)))
    return config


def fetch_conf_path(conf: Section, path):
    """
    Retrieves the named configuration section
    :param conf:        The root configuration
    :param path:        An iterable that lists the names of the sections to descend into
    :return: The configuration object identified by the path, or None
    """
    for p in path:
        conf = conf.get(p, None)
        if conf is None:
            return None
    return conf


def apply_conf(conf: Section, target):
    """
    Applies the values in a configuration section to a target object, setting any
    attributes with the same name. Nested sections are applied to the attribute of the same name.
    """
    for k, v in conf.items():
        if not hasattr(target, k):
            continue
        if isinstance(v, Section):
            apply_conf(v, getattr(target, k))
        else:
            setattr(target, k, v)


def load_settings(directory=None, name='bridge', user_directory='~') -> BridgeSettings:
    """
    Loads the layered configuration and applies it to a new BridgeSettings.
    Raises ConfigObjError if a file is malformed or a value fails validation.
    """
    settings = BridgeSettings()
    apply_conf(load_config(name, directory, user_directory), settings)
    return settings
