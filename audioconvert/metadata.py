'''
Read music tags with an external probe (ffprobe)
'''


import json
from collections import namedtuple

from audioconvert.errors import ProbeError, ProcessError
from audioconvert.process import run_command


import logging
log = logging.getLogger(__name__)



PROBE_COMMAND = (
    'ffprobe', '-hide_banner',
    '-i', '{filename}',
    '-show_format', '-show_streams',
    '-print_format', 'json',
)
PROBE_ENCODING = 'utf-8'



_TrackMetadata = namedtuple('TrackMetadata', [
    'album',
    'artist',
    'album_artist',
    'title',
    'track',
    'codec',
    'sample_rate',
])


class TrackMetadata(_TrackMetadata):
    '''Music tags of a single file (read only)'''
    __slots__ = ()

    EASY_TAGS = {
        # mutagen easy tag: TrackMetadata field
        'album': 'album',
        'artist': 'artist',
        'albumartist': 'album_artist',
        'title': 'title',
        'tracknumber': 'track',
    }


    def __new__(cls, album='', artist='', album_artist='', title='', track='',
                codec=None, sample_rate=None):
        return super().__new__(
            cls, album, artist, album_artist or artist, title, track, codec, sample_rate
        )


    def as_tags(self):
        '''Tags in a format suitable for mutagen's easy interface'''
        tags = {}
        for key, field in self.EASY_TAGS.items():
            value = getattr(self, field)
            if value:
                tags[key] = [value]
        return tags



def parse_probe_output(document):
    '''
    Build TrackMetadata from ffprobe's JSON document

    Tag names are matched case-insensitively. Format level tags take
    precedence over the tags of the first audio stream.
    '''
    if isinstance(document, bytes):
        document = document.decode(PROBE_ENCODING)
    data = json.loads(document)
    if not isinstance(data, dict) or not isinstance(data.get('format'), dict):
        raise ValueError('no "format" section in probe output')

    audio = {}
    for stream in data.get('streams') or []:
        if isinstance(stream, dict) and stream.get('codec_type', 'audio') == 'audio':
            audio = stream
            break

    tags = {}
    for container in (audio.get('tags'), data['format'].get('tags')):
        if isinstance(container, dict):
            tags.update((str(k).lower(), str(v).strip()) for k, v in container.items())

    return TrackMetadata(
        album = tags.get('album', ''),
        artist = tags.get('artist', ''),
        album_artist = tags.get('album_artist', tags.get('albumartist', '')),
        title = tags.get('title', ''),
        track = tags.get('track', tags.get('tracknumber', '')),
        codec = audio.get('codec_name'),
        sample_rate = audio.get('sample_rate'),
    )



class MetadataReader:
    '''
    Callable that probes a music file and returns its TrackMetadata

    Every call starts a new probe process, results are not cached.
    '''


    def __init__(self, command=PROBE_COMMAND):
        self.command = tuple(command)


    def __repr__(self):
        return '<{cls}({command})>'.format(
            cls = self.__class__.__name__,
            command = self.command[0],
        )


    def __call__(self, filename, cancel=None):
        args = [arg.replace('{filename}', filename) for arg in self.command]
        try:
            output = run_command(args, cancel=cancel, stage='probe')
        except ProcessError as error:
            raise ProbeError(filename, str(error), error.stderr) from error
        try:
            metadata = parse_probe_output(output)
        except ValueError as error:  # JSONDecodeError and UnicodeDecodeError included
            raise ProbeError(filename, 'unparsable probe output ({})'.format(error)) from error
        log.debug('Metadata for {}: {}'.format(filename, metadata))
        return metadata



read_metadata = MetadataReader()
