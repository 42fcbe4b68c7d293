"""
    Container and object model on top of the Object Storage client.

The adapter works with containers and objects; python-swiftclient only has
a flat connection API, this module maps one onto the other. Each method is
a single request to the object storage.

Authors: Chmouel Boudjnah <chmouel@chmouel.com>
         Nick Craig-Wood <nick@craig-wood.com>
         Juan J. Martinez <jjm@usebox.net>
"""

import io
import logging
import mimetypes
from errno import EPERM, ENOENT, EACCES, EIO, ENOTDIR
from functools import wraps
from hashlib import md5
from urllib.parse import quote

import memcache
from swiftclient.client import Connection, ClientException

from cloudfsadapter.constants import default_mimetype, download_chunk_size
from cloudfsadapter.errors import IOSError
from cloudfsadapter.utils import smart_str

__all__ = ['Container', 'StorageObject', 'ObjectStream', 'connect']

class ProxyConnection(Connection):
    """Connection that caches the auth token in memcache if available."""

    # max time to cache auth tokens (seconds), based on swift defaults
    TOKEN_TTL = 86400

    def __init__(self, memcache, *args, **kwargs):
        self.memcache = memcache
        self.ignore_auth_cache = False
        self.tenant_name = None
        if kwargs.get('auth_version') == "2.0":
            self.tenant_name = kwargs['tenant_name']
        super(ProxyConnection, self).__init__(*args, **kwargs)

    def get_auth(self):
        """Perform the authentication using a token cache if memcache is available"""
        if self.memcache:
            tenant_name = self.tenant_name or "-"
            key = "tk%s" % md5(("%s%s%s%s" % (self.authurl, self.user, tenant_name, self.key)).encode("utf-8")).hexdigest()
            cache = self.memcache.get(key)
            if not cache or self.ignore_auth_cache:
                logging.debug("token cache miss, key=%s" % key)
                cache = super(ProxyConnection, self).get_auth()
                self.memcache.set(key, cache, self.TOKEN_TTL)
                self.ignore_auth_cache = False
            else:
                logging.debug("token cache hit, key=%s" % key)
                # if the token has expired we will be called again
                self.ignore_auth_cache = True
            return cache
        # no memcache
        return super(ProxyConnection, self).get_auth()

def translate_objectstorage_error(fn):
    """
    Decorator to catch Object Storage errors and translating them into IOSError.

    Other exceptions are not caught.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        name = getattr(fn, "__name__", "unknown")
        log = lambda msg: logging.debug("At %s: %s" % (name, msg))
        try:
            return fn(*args, **kwargs)
        except ClientException as e:
            # some errno mapping
            if e.http_status == 404:
                err = ENOENT
            elif e.http_status == 400:
                err = EPERM
            elif e.http_status == 403:
                err = EACCES
            else:
                err = EIO

            msg = "%s: %s" % (smart_str(e.msg), smart_str(e.http_reason))
            log(msg)
            raise IOSError(err, msg)
    return wrapper

def _header(headers, name, default=None):
    """Case insensitive lookup of a header."""
    name = name.lower()
    for key, value in (headers or {}).items():
        if key.lower() == name:
            return value
    return default

def _int(value):
    if value is None or value == '':
        return None
    return int(value)

def _encode(content):
    if isinstance(content, str):
        return content.encode("utf-8")
    return content

def _content_length(content):
    if isinstance(content, (bytes, bytearray)):
        return len(content)
    return None

def guess_mimetype(name):
    return mimetypes.guess_type(name)[0] or default_mimetype

class Container(object):
    """A container in the Object Storage."""

    def __init__(self, conn, name):
        self.conn = conn
        self.name = name

    def __repr__(self):
        return "<Container %r>" % self.name

    @translate_objectstorage_error
    def create_object(self, name, content, headers=None):
        """
        Create (or replace) the object `name` with `content`.

        `content` can be bytes, text (sent as UTF-8) or a file-like object
        opened in binary mode. Returns the new StorageObject.
        """
        headers = dict(headers or {})
        content = _encode(content)
        content_length = _content_length(content)
        logging.debug("create object %r/%r headers=%r" % (self.name, name, headers))
        response = {}
        etag = self.conn.put_object(self.name, name, content,
                                    content_length=content_length,
                                    headers=headers,
                                    response_dict=response,
                                    )
        if content_length is None:
            # streamed, the size is only known by the storage
            return self.get_object(name)

        return StorageObject(self, name,
                             content_type=_header(headers, 'content-type') or guess_mimetype(name),
                             last_modified=_header(response.get('headers'), 'last-modified'),
                             content_length=content_length,
                             etag=etag,
                             )

    @translate_objectstorage_error
    def get_object(self, name):
        """Return the StorageObject for `name` (metadata only)."""
        logging.debug("head object %r/%r" % (self.name, name))
        meta = self.conn.head_object(self.name, name)
        return StorageObject.from_headers(self, name, meta)

    @translate_objectstorage_error
    def object_exists(self, name):
        """Is there an object called `name` in the container."""
        logging.debug("object exists %r/%r" % (self.name, name))
        try:
            self.conn.head_object(self.name, name)
        except ClientException as e:
            if e.http_status == 404:
                return False
            raise
        return True

    @translate_objectstorage_error
    def list_objects(self, prefix=None, marker=None):
        """
        Return one page of the container listing as StorageObjects.

        The page starts after `marker` (an object name); an empty list means
        there is nothing else to list.
        """
        logging.debug("list objects %r prefix=%r marker=%r" % (self.name, prefix, marker))
        _, objects = self.conn.get_container(self.name, marker=marker, prefix=prefix)
        logging.debug("number of objects after marker %s: %s" % (marker, len(objects)))
        return [StorageObject.from_listing(self, obj) for obj in objects if 'name' in obj]

class StorageObject(object):
    """An object in a container."""

    def __init__(self, container, name, content_type=None, last_modified=None, content_length=None, etag=None):
        self.container = container
        self.name = name
        self.content_type = content_type
        self.last_modified = last_modified
        self.content_length = content_length
        self.etag = etag
        # set before calling `update`
        self.content = None

    @classmethod
    def from_headers(cls, container, name, headers):
        """Build the object from a HEAD response."""
        return cls(container, name,
                   content_type=headers.get('content-type'),
                   last_modified=headers.get('last-modified'),
                   content_length=_int(headers.get('content-length')),
                   etag=headers.get('etag'),
                   )

    @classmethod
    def from_listing(cls, container, obj):
        """Build the object from a container listing entry."""
        # {u'bytes': 4820,  u'content_type': '...',  u'hash': u'...',  u'last_modified': u'2008-11-05T00:56:00.406565',  u'name': u'new_object'},
        return cls(container, obj['name'],
                   content_type=obj.get('content_type'),
                   last_modified=obj.get('last_modified'),
                   content_length=obj.get('bytes'),
                   etag=obj.get('hash'),
                   )

    def __repr__(self):
        return "<StorageObject %r/%r>" % (self.container.name, self.name)

    @property
    def conn(self):
        """Connection to the storage."""
        return self.container.conn

    @translate_objectstorage_error
    def update(self, headers=None):
        """
        Upload `content` replacing the stored data.

        If `etag` is set the storage will check it against the data. The
        metadata is refreshed from the response; `last_modified` is None if
        the storage didn't report it.
        """
        headers = dict(headers or {})
        content = _encode(self.content)
        content_length = _content_length(content)
        content_type = _header(headers, 'content-type')
        if content_type:
            self.content_type = content_type
        logging.debug("update object %r/%r headers=%r" % (self.container.name, self.name, headers))
        response = {}
        self.etag = self.conn.put_object(self.container.name, self.name, content,
                                         content_length=content_length,
                                         etag=self.etag,
                                         content_type=None if content_type else self.content_type,
                                         headers=headers,
                                         response_dict=response,
                                         )
        self.last_modified = _header(response.get('headers'), 'last-modified')
        if content_length is not None:
            self.content_length = content_length
        elif self.last_modified:
            meta = self.conn.head_object(self.container.name, self.name)
            self.content_length = _int(meta.get('content-length'))
        return self

    @translate_objectstorage_error
    def delete(self):
        """Delete the object."""
        logging.debug("delete object %r/%r" % (self.container.name, self.name))
        self.conn.delete_object(self.container.name, self.name)

    @translate_objectstorage_error
    def copy(self, destination):
        """
        Server side copy of the object.

        `destination` is "/container/object".
        """
        dst_container, _, dst_name = destination.lstrip("/").partition("/")
        if not dst_container or not dst_name:
            raise IOSError(EPERM, "Invalid copy destination %r" % destination)
        headers = {'X-Copy-From': quote("/%s/%s" % (self.container.name, self.name))}
        logging.debug("copying %r/%r -> %r, %r" % (self.container.name, self.name, destination, headers))
        self.conn.put_object(dst_container, dst_name, contents=None, headers=headers)

    def download(self):
        """Return a readable (and seekable) binary stream with the object data."""
        return io.BufferedReader(ObjectStream(self), buffer_size=download_chunk_size)

class ObjectStream(io.RawIOBase):
    """
    Raw stream reading an object from the storage.

    Data is fetched in chunks of `chunk_size` bytes over a single request.
    Seeking drops the current request and the next read starts a new one
    with a `Range` header.
    """

    def __init__(self, obj, chunk_size=download_chunk_size):
        super(ObjectStream, self).__init__()
        self.obj = obj
        self.chunk_size = chunk_size
        self.position = 0
        self._body = None
        self._buffer = b""

    @property
    def conn(self):
        """Connection to the storage."""
        return self.obj.conn

    def readable(self):
        return True

    def seekable(self):
        return True

    def _open(self):
        headers = {}
        if self.position > 0:
            headers['Range'] = "bytes=%s-" % self.position
        logging.debug("get object %r/%r headers=%r" % (self.obj.container.name, self.obj.name, headers))
        _, self._body = self.conn.get_object(self.obj.container.name, self.obj.name,
                                             resp_chunk_size=self.chunk_size,
                                             headers=headers,
                                             )

    def _drop(self):
        if self._body is not None and hasattr(self._body, "close"):
            self._body.close()
        self._body = None
        self._buffer = b""

    @translate_objectstorage_error
    def readinto(self, b):
        if self.obj.content_length is not None and self.position >= self.obj.content_length:
            return 0
        if self._body is None:
            self._open()
        while not self._buffer:
            try:
                self._buffer = next(self._body)
            except StopIteration:
                return 0
        size = min(len(b), len(self._buffer))
        b[:size] = self._buffer[:size]
        self._buffer = self._buffer[size:]
        self.position += size
        return size

    @translate_objectstorage_error
    def seek(self, offset, whence=io.SEEK_SET):
        logging.debug("seek offset=%s, whence=%s" % (offset, whence))
        if whence == io.SEEK_SET:
            position = offset
        elif whence == io.SEEK_CUR:
            position = self.position + offset
        elif whence == io.SEEK_END:
            if self.obj.content_length is None:
                meta = self.conn.head_object(self.obj.container.name, self.obj.name)
                self.obj.content_length = _int(meta.get('content-length'))
            position = self.obj.content_length + offset
        else:
            raise IOSError(EPERM, "Invalid file offset")

        if position < 0:
            raise IOSError(EPERM, "Invalid file offset")

        if position != self.position:
            # we need to start over after a seek call
            self._drop()
            self.position = position
        return self.position

    def tell(self):
        return self.position

    def close(self):
        self._drop()
        super(ObjectStream, self).close()

@translate_objectstorage_error
def connect(container, username, api_key, authurl, keystone=None, memcache_hosts=None):
    """
    Authenticate and return the Container `container`.

    username - for auth 2.0 it can be TENANT<tenant_separator>USERNAME
    api_key
    authurl
    keystone - optional dict for auth 2.0 (keystone) with tenant_separator,
               service_type, endpoint_type and region_name
    memcache_hosts - optional list of memcache servers to cache the auth token
    """
    if not username or not api_key:
        raise ClientException("username/password required", http_status=401)

    kwargs = dict(authurl=authurl, auth_version="1.0")

    if keystone:
        if keystone['tenant_separator'] in username:
            tenant_name, username = username.split(keystone['tenant_separator'], 1)
        else:
            tenant_name = None

        logging.debug("keystone authurl=%r username=%r tenant_name=%r conf=%r" % (authurl, username, tenant_name, keystone))

        kwargs["auth_version"] = "2.0"
        kwargs["tenant_name"] = tenant_name
        kwargs["os_options"] = dict(service_type=keystone['service_type'],
                                    endpoint_type=keystone['endpoint_type'],
                                    region_name=keystone['region_name'],
                                    )

    cache = None
    if memcache_hosts:
        logging.debug("connecting to memcache %r" % memcache_hosts)
        cache = memcache.Client(memcache_hosts)

    conn = ProxyConnection(cache, user=username, key=api_key, **kwargs)
    # force authentication
    conn.url, conn.token = conn.get_auth()
    conn.http_conn = None

    # verify the container exists
    try:
        conn.head_container(container)
    except ClientException as e:
        if e.http_status == 404:
            raise IOSError(ENOTDIR, "Container not found: %s" % container)
        raise

    return Container(conn, container)
