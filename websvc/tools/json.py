# Part of Websvc, see LICENSE file for full copyright and licensing details.

import base64
import datetime
import decimal


def json_default(obj):
    """ ``default`` hook of :func:`json.dumps` for the values services
    commonly return: dates, decimals, binary payloads, sets and entities.
    """
    if isinstance(obj, datetime.datetime):
        return obj.isoformat(sep=' ', timespec='seconds')
    if isinstance(obj, (datetime.date, datetime.time)):
        return obj.isoformat()
    if isinstance(obj, decimal.Decimal):
        return float(obj)
    if isinstance(obj, bytes):
        return base64.b64encode(obj).decode('ascii')
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if hasattr(obj, 'to_filtered_map'):
        return obj.to_filtered_map()
    return str(obj)
