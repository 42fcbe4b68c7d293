import calendar
import posixpath
from datetime import datetime
from email.utils import parsedate_tz, mktime_tz

#from django.utils
def smart_str(s, encoding='utf-8', strings_only=False, errors='strict'):
    """Return a text version of `s`, decoding bytes with `encoding`."""
    if strings_only and (s is None or isinstance(s, int)):
        return s
    if isinstance(s, bytes):
        return s.decode(encoding, errors)
    if not isinstance(s, str):
        if isinstance(s, Exception):
            return ' '.join([smart_str(arg, encoding, strings_only, errors) for arg in s.args])
        return str(s)
    return s

def parse_last_modified(value):
    """
    Returns the unix timestamp (int) of a last modified value.

    The object storage uses two formats: HTTP dates in HEAD/PUT responses
    ("Wed, 05 Nov 2008 00:56:00 GMT") and ISO dates without timezone in the
    container listings ("2008-11-05T00:56:00.406565"). Both are UTC.
    datetime instances and numbers are accepted too.
    """
    if value is None or value is False or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return calendar.timegm(value.timetuple())
        return int(value.timestamp())
    if isinstance(value, (int, float)):
        return int(value)

    value = smart_str(value).strip()
    parsed = parsedate_tz(value)
    if parsed is not None:
        return mktime_tz(parsed)

    if "." in value:
        value = value.rsplit(".", 1)[0]
    return calendar.timegm(datetime.strptime(value, "%Y-%m-%dT%H:%M:%S").timetuple())

def dirname(path):
    """Parent of `path`, empty string for top level entries."""
    parent = posixpath.dirname(path)
    if parent in ('.', '/'):
        return ''
    return parent

def emulate_directories(listing):
    """
    Add the directories implied by the paths in a flat listing.

    Object storage has no directories, only names with slashes (and optional
    marker objects). Every ancestor of a listed path that is not present as
    a marker object is appended to the listing as a "dir" entry, once.
    """
    directories = []
    seen = set()
    listed_directories = set()
    for entry in listing:
        if entry.get('type') == 'dir':
            listed_directories.add(entry['path'])
        parent = (entry.get('dirname') or '').strip()
        while parent and parent not in seen:
            seen.add(parent)
            directories.append(parent)
            parent = dirname(parent)

    for directory in directories:
        if directory in listed_directories:
            continue
        listing.append(dict(type='dir',
                            dirname=dirname(directory),
                            path=directory,
                            timestamp=None,
                            mimetype=None,
                            size=None,
                            ))
    return listing
