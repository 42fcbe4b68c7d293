# -*- encoding: utf-8 -*-
import os
import logging
from configparser import RawConfigParser
from logging.handlers import SysLogHandler

from cloudfsadapter.constants import default_config_file, config_section, \
    default_ks_tenant_separator, default_ks_service_type, default_ks_endpoint_type

class Config(object):
    """
    Options for a single write/update call.

    Keys not set here are looked up in the fallback config (if any).
    """

    def __init__(self, settings=None, fallback=None):
        self.settings = dict(settings or {})
        self.fallback = fallback

    @classmethod
    def wrap(cls, config):
        """Return `config` as a Config (it can be None or a mapping)."""
        if isinstance(config, Config):
            return config
        return cls(config)

    def has(self, key):
        if key in self.settings:
            return True
        return self.fallback is not None and self.fallback.has(key)

    def get(self, key, default=None):
        if key in self.settings:
            return self.settings[key]
        if self.fallback is not None:
            return self.fallback.get(key, default)
        return default

    def set(self, key, value):
        self.settings[key] = value
        return self

def parse_configuration(config_file=default_config_file):
    """Parse the configuration file"""
    config = RawConfigParser({'auth-url': None,
                              'username': None,
                              'api-key': None,
                              'container': None,
                              'prefix': '',
                              'memcache': None,
                              'verbose': 'no',
                              'syslog': 'no',
                              'log-file': None,
                              # keystone auth 2.0 support
                              'keystone-auth': 'no',
                              'keystone-region-name': None,
                              'keystone-tenant-separator': default_ks_tenant_separator,
                              'keystone-service-type': default_ks_service_type,
                              'keystone-endpoint-type': default_ks_endpoint_type,
                             })
    config.read(config_file)
    if not config.has_section(config_section):
        config.add_section(config_section)

    return config

def get_options(config):
    """
    Return a dict with the connection and logging settings.

    Raises ValueError if a required setting is missing.
    """
    for key in ('auth-url', 'username', 'api-key', 'container'):
        if not config.get(config_section, key):
            raise ValueError("%s is required and it wasn't provided" % key)

    options = dict(authurl=config.get(config_section, 'auth-url'),
                   username=config.get(config_section, 'username'),
                   api_key=config.get(config_section, 'api-key'),
                   container=config.get(config_section, 'container'),
                   prefix=config.get(config_section, 'prefix') or '',
                   verbose=config.getboolean(config_section, 'verbose'),
                   syslog=config.getboolean(config_section, 'syslog'),
                   log_file=config.get(config_section, 'log-file'),
                   keystone=None,
                   memcache=None,
                   )

    memcache = config.get(config_section, 'memcache')
    if memcache:
        options['memcache'] = [x.strip() for x in memcache.split(',')]

    if config.getboolean(config_section, 'keystone-auth'):
        options['keystone'] = dict(region_name=config.get(config_section, 'keystone-region-name'),
                                   tenant_separator=config.get(config_section, 'keystone-tenant-separator'),
                                   service_type=config.get(config_section, 'keystone-service-type'),
                                   endpoint_type=config.get(config_section, 'keystone-endpoint-type'),
                                   )
    return options

def setup_log(verbose=False, log_file=None, syslog=False):
    """Setup Logging."""

    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO

    if syslog:
        logger = logging.getLogger()
        try:
            handler = SysLogHandler(address='/dev/log',
                                    facility=SysLogHandler.LOG_DAEMON)
        except IOError:
            # fall back to UDP
            handler = SysLogHandler(facility=SysLogHandler.LOG_DAEMON)
        prefix = "%s[%s]: " % (__package__, os.getpid())
        formatter = logging.Formatter(prefix + "%(message)s")
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(log_level)
    else:
        log_format = '%(asctime)-15s - %(levelname)s - %(message)s'
        logging.basicConfig(filename=log_file,
                            format=log_format,
                            level=log_level)

def adapter_from_config(config_file=default_config_file):
    """Return an ObjectStoreAdapter using the settings in `config_file`."""
    from cloudfsadapter.adapter import ObjectStoreAdapter
    from cloudfsadapter.container import connect

    options = get_options(parse_configuration(config_file))
    setup_log(options['verbose'], options['log_file'], options['syslog'])

    logging.debug("connecting to %r container %r" % (options['authurl'], options['container']))
    container = connect(options['container'],
                        options['username'],
                        options['api_key'],
                        options['authurl'],
                        keystone=options['keystone'],
                        memcache_hosts=options['memcache'],
                        )
    return ObjectStoreAdapter(container, options['prefix'])
