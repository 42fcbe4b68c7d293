version = '0.1'

default_config_file = '/etc/cloudfsadapter.conf'
config_section = 'cloudfsadapter'

# content type of the zero-byte objects that stand for directories
directory_mimetype = 'application/directory'
default_mimetype = 'application/octet-stream'

# bytes per chunk when streaming an object down
download_chunk_size = 65536

# keystone defaults
default_ks_tenant_separator = '.'
default_ks_service_type = 'object-store'
default_ks_endpoint_type = 'publicURL'
