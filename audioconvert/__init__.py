'''
Batch transcode lossless audio with external encoders
'''


LOSSLESS_EXTENSIONS = {'flac'}
ARCHIVE_EXTENSIONS = {'zip'}
ARTWORK_EXTENSIONS = {'jpg', 'jpeg', 'png'}

POOL_SIZE = 8


DEFAULT_CONFIG = {
    'pool_size': POOL_SIZE,
    'log_level': 'INFO',
    'output_dir': None,
    'rsync': None,
    'cover': None,
    'tags': False,
    'operation': {
        'preset': 'fdkaac',
        'ffmpeg_options': '',
        'fdkaac_options': '-I -p 2 -m 5 -G 0',
    },
}
CONFIG_ENCODING = 'utf-8'
