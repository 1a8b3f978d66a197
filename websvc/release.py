# -*- coding: utf-8 -*-
# Part of Websvc, see LICENSE file for full copyright and licensing details.

RELEASE_LEVELS = [ALPHA, BETA, CANDIDATE, FINAL] = ['alpha', 'beta', 'candidate', 'final']
RELEASE_LEVELS_DISPLAY = {
    ALPHA: 'ALPHA',
    BETA: 'BETA',
    CANDIDATE: 'CANDIDATE',
    FINAL: '',
}

# version_info format: (MAJOR, MINOR, MICRO, RELEASE_LEVEL, SERIAL)
# inspired by Python's own sys.version_info, in order to be
# properly comparable using normal operators, for example:
#  (6,1,0,'beta',0) < (6,1,0,'candidate',1) < (6,1,0,'candidate',2)
#  (6,1,0,'candidate',2) < (6,1,0,'final',0) < (6,1,2,'final',0)
version_info = (0, 3, 0, BETA, 0, '')
version = '.'.join(str(s) for s in version_info[:2]) + RELEASE_LEVELS_DISPLAY[version_info[3]] + str(version_info[4] or '') + version_info[5]
series = serie = major_version = '.'.join(str(s) for s in version_info[:2])

product_name = 'Websvc'
description = 'Websvc RPC server'
long_desc = '''Websvc exposes plain Python service objects as JSON and XML web services.'''
classifiers = """Development Status :: 4 - Beta
License :: OSI Approved :: BSD License
Programming Language :: Python
Programming Language :: Python :: 3
Topic :: Internet :: WWW/HTTP :: WSGI :: Application
"""
url = 'https://github.com/websvc/websvc'
author = 'Websvc'
author_email = 'info@websvc.dev'
license = 'BSD'
