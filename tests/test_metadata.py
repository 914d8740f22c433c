'''
Unit tests for reading music tags
'''


import json
import os
from tempfile import TemporaryDirectory
from unittest import TestCase

from audioconvert.errors import ProbeError
from audioconvert.metadata import MetadataReader, TrackMetadata, parse_probe_output



FFPROBE_OUTPUT = {
    'streams': [
        {
            'index': 0,
            'codec_name': 'flac',
            'codec_type': 'audio',
            'sample_rate': '44100',
            'tags': {'TITLE': 'From stream', 'COMMENT': 'whatever'},
        },
    ],
    'format': {
        'filename': '01.flac',
        'nb_streams': 1,
        'format_name': 'flac',
        'tags': {
            'ALBUM': 'Album Name',
            'ARTIST': 'Some Artist',
            'album_artist': 'Various Artists',
            'TITLE': 'Song Title ',
            'track': '3',
        },
    },
}



class Parsing(TestCase):

    def test_format_tags(self):
        metadata = parse_probe_output(json.dumps(FFPROBE_OUTPUT).encode())
        self.assertEqual(metadata.album, 'Album Name')
        self.assertEqual(metadata.artist, 'Some Artist')
        self.assertEqual(metadata.album_artist, 'Various Artists')
        self.assertEqual(metadata.title, 'Song Title')
        self.assertEqual(metadata.track, '3')
        self.assertEqual(metadata.codec, 'flac')
        self.assertEqual(metadata.sample_rate, '44100')


    def test_stream_tags(self):
        document = {
            'streams': [{'codec_type': 'audio', 'tags': {'title': 'T', 'TRACKNUMBER': '7'}}],
            'format': {},
        }
        metadata = parse_probe_output(json.dumps(document))
        self.assertEqual(metadata.title, 'T')
        self.assertEqual(metadata.track, '7')
        self.assertEqual(metadata.album, '')


    def test_album_artist_fallback(self):
        metadata = parse_probe_output('{"format": {"tags": {"artist": "X"}}}')
        self.assertEqual(metadata.album_artist, 'X')


    def test_invalid(self):
        for document in ('', 'not json', '[]', '{}', '{"format": 1}', b'\xff\xfe'):
            with self.subTest(document=document):
                with self.assertRaises(ValueError):
                    parse_probe_output(document)


    def test_as_tags(self):
        metadata = TrackMetadata(album='A', artist='B', title='C', track='1')
        self.assertEqual(metadata.as_tags(), {
            'album': ['A'],
            'artist': ['B'],
            'albumartist': ['B'],
            'title': ['C'],
            'tracknumber': ['1'],
        })



class Reader(TestCase):

    def setUp(self):
        self.tmp = TemporaryDirectory()


    def tearDown(self):
        self.tmp.cleanup()


    def write(self, name, content):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w') as f:
            f.write(content)
        return path


    def test_read(self):
        path = self.write('01 song.flac', json.dumps(FFPROBE_OUTPUT))
        reader = MetadataReader(['cat', '{filename}'])
        metadata = reader(path)
        self.assertEqual(metadata.title, 'Song Title')
        self.assertEqual(metadata.track, '3')


    def test_probe_failure(self):
        reader = MetadataReader(['sh', '-c', 'echo no such file >&2; exit 1', '{filename}'])
        with self.assertRaises(ProbeError) as cm:
            reader('/missing.flac')
        self.assertEqual(cm.exception.filename, '/missing.flac')
        self.assertIn('no such file', cm.exception.stderr)


    def test_malformed_output(self):
        path = self.write('bad.flac', 'this is not json')
        with self.assertRaises(ProbeError) as cm:
            MetadataReader(['cat', '{filename}'])(path)
        self.assertIn('unparsable', str(cm.exception))


    def test_missing_probe(self):
        with self.assertRaises(ProbeError):
            MetadataReader(['no-such-probe-audioconvert', '{filename}'])('/a.flac')
