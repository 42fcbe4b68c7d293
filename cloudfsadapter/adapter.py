"""
    A filesystem adapter for an Object Storage container.

Paths are relative to the container (and to the optional prefix inside it).
Directories don't exist in the object storage: they are emulated with
zero-byte objects of type "application/directory" and by the slashes in the
object names.

Every operation returns a normalized metadata record:

    {'type': 'file' or 'dir', 'dirname': ..., 'path': ..., 'timestamp': ...,
     'mimetype': ..., 'size': ...}

Some operations report any failure returning False (`has`, `delete`,
`delete_dir` and `rename`), the rest let the errors propagate.
"""

import logging
from errno import EIO
from functools import wraps
from urllib.parse import quote, unquote

from cloudfsadapter.config import Config
from cloudfsadapter.constants import directory_mimetype
from cloudfsadapter.errors import PartialRenameError
from cloudfsadapter.utils import smart_str, dirname, emulate_directories, parse_last_modified

__all__ = ['ObjectStoreAdapter']

def report_failure(fn):
    """
    Decorator returning False if the operation raises any error.

    PartialRenameError is always raised, it can't be reported as a plain
    failure.
    """
    @wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except PartialRenameError:
            raise
        except Exception as e:
            logging.debug("At %s: %s" % (fn.__name__, e))
            return False
    return wrapper

class ObjectStoreAdapter(object):
    """
    Filesystem adapter for a container in the Object Storage.

    container - an authenticated Container (see cloudfsadapter.container.connect)
    prefix - optional path inside the container used as root
    """

    def __init__(self, container, prefix=''):
        self.container = container
        self.prefix = ''
        if prefix:
            self.prefix = prefix.rstrip('/') + '/'

    def get_container(self):
        return self.container

    def get_prefix(self):
        return self.prefix

    def apply_prefix(self, path):
        """Return the object name for `path`, percent-encoded segment by segment."""
        encoded = '/'.join(quote(segment, safe='') for segment in smart_str(path).split('/'))
        return self.prefix + encoded.lstrip('/')

    def remove_prefix(self, name):
        """Return the path for the object name `name`."""
        name = smart_str(name)
        if self.prefix and name.startswith(self.prefix):
            name = name[len(self.prefix):]
        return unquote(name)

    def _get_object(self, path):
        return self.container.get_object(self.apply_prefix(path))

    def _iter_objects(self, location):
        """All the objects which name starts with `location`, following the markers."""
        marker = None
        while True:
            page = self.container.list_objects(prefix=location, marker=marker)
            if not page:
                break
            for obj in page:
                yield obj
            marker = page[-1].name

    def normalize_object(self, obj):
        """Return the normalized record for a StorageObject."""
        path = self.remove_prefix(obj.name)
        mimetype = [part.strip() for part in (obj.content_type or '').split(';')]
        return dict(type='dir' if directory_mimetype in mimetype else 'file',
                    dirname=dirname(path),
                    path=path,
                    timestamp=parse_last_modified(obj.last_modified),
                    mimetype=mimetype[0],
                    size=obj.content_length,
                    )

    def write(self, path, contents, config=None):
        """Create or replace the object at `path`."""
        location = self.apply_prefix(path)
        config = Config.wrap(config)
        headers = {}
        if config.has('headers'):
            headers = config.get('headers')
        logging.debug("write %r" % location)
        response = self.container.create_object(name=location,
                                                content=contents,
                                                headers=headers,
                                                )
        return self.normalize_object(response)

    def write_stream(self, path, resource, config=None):
        """Like `write` but reading the contents from a binary file object."""
        return self.write(path, resource, config)

    def update(self, path, contents, config=None):
        """
        Replace the contents of the existing object at `path`.

        Returns False if the storage didn't report the modification.
        """
        obj = self._get_object(path)
        obj.content = contents
        # the storage will compute it
        obj.etag = None
        logging.debug("update %r" % obj.name)
        response = obj.update(headers=Config.wrap(config).get('headers', {}))

        if not response.last_modified:
            logging.debug("update %r: no last modified in the response" % obj.name)
            return False

        return self.normalize_object(response)

    def update_stream(self, path, resource, config=None):
        """Like `update` but reading the contents from a binary file object."""
        return self.update(path, resource, config)

    @report_failure
    def rename(self, path, newpath):
        """
        Rename `path` to `newpath` copying the object and deleting the source.

        Raises PartialRenameError if the copy succeeds but the source can't
        be deleted.
        """
        obj = self._get_object(path)
        newlocation = self.apply_prefix(newpath)
        destination = "/%s/%s" % (self.container.name, newlocation.lstrip('/'))
        logging.debug("rename %r -> %r" % (obj.name, destination))
        obj.copy(destination)

        try:
            obj.delete()
        except Exception as e:
            logging.warning("rename %r -> %r: source not removed (%s)" % (obj.name, destination, e))
            raise PartialRenameError(getattr(e, "errno", None) or EIO,
                                     "Copied to %s but failed to remove %s: %s" % (newpath, path, e),
                                     source=path,
                                     destination=newpath,
                                     )
        return True

    @report_failure
    def delete(self, path):
        """Delete the object at `path`."""
        location = self.apply_prefix(path)
        logging.debug("delete %r" % location)
        self.container.get_object(location).delete()
        return True

    @report_failure
    def delete_dir(self, directory):
        """
        Delete every object under `directory`, one request per object.

        This is not atomic: if it fails some objects may be deleted already.
        """
        location = self.apply_prefix(directory)
        logging.debug("delete dir %r" % location)
        for obj in self._iter_objects(location):
            obj.delete()
        return True

    def create_dir(self, directory, config=None):
        """Create a directory marker object at `directory`."""
        config = Config.wrap(config)
        headers = dict((key, value) for key, value in config.get('headers', {}).items()
                       if key.lower() != 'content-type')
        headers['Content-Type'] = directory_mimetype
        extended_config = Config(fallback=config)
        extended_config.set('headers', headers)

        return self.write(directory, '', extended_config)

    @report_failure
    def has(self, path):
        """Does the object at `path` exist."""
        location = self.apply_prefix(path)
        return self.container.object_exists(location)

    def read(self, path):
        """Return the record for `path` including its `contents` (bytes)."""
        obj = self._get_object(path)
        data = self.normalize_object(obj)

        stream = obj.download()
        try:
            data['contents'] = stream.read(obj.content_length)
        finally:
            stream.close()

        return data

    def read_stream(self, path):
        """Return {'stream': <binary file object>} to read `path` without buffering it."""
        obj = self._get_object(path)
        stream = obj.download()
        stream.seek(0)

        return dict(stream=stream)

    def list_contents(self, directory='', recursive=False):
        """
        List everything under `directory`.

        The listing is flat and always includes all the levels; `recursive`
        is accepted for compatibility and the caller is expected to filter.
        Directories without a marker object are added from the paths.
        """
        location = self.apply_prefix(directory)
        logging.debug("list contents %r (recursive: %r)" % (location, recursive))
        listing = [self.normalize_object(obj) for obj in self._iter_objects(location)]
        logging.debug("total number of objects %s" % len(listing))
        return emulate_directories(listing)

    def get_metadata(self, path):
        """Return the record for `path`."""
        return self.normalize_object(self._get_object(path))

    get_size = get_metadata
    get_mimetype = get_metadata
    get_timestamp = get_metadata
