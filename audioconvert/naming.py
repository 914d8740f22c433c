'''
Derive output file names and remote paths from music tags
'''


import os
import re



PLACEHOLDER = '_'
TRACK_WIDTH = 2



_bad_characters = re.compile(r"[^\w()\-!'., ]+")
def sanitize(name, placeholder=PLACEHOLDER):
    '''
    Replace each run of characters that are not safe for file systems and
    shells with a single placeholder
    '''
    return _bad_characters.sub(placeholder, name)



_track_total = re.compile(r'^\s*(\d+)\s*/\s*\d*\s*$')
def pad_track(track, width=TRACK_WIDTH):
    '''
    Zero-pad the track number to the given width

    "3" -> "03", "3/12" -> "03", "123" -> "123", "" -> "".
    Values that are not numbers are returned as is (without whitespace).
    '''
    track = (track or '').strip()
    total = _track_total.match(track)
    if total:
        track = total.group(1)
    if track.isdigit():
        return track.zfill(width)
    return track



def output_name(metadata, extension, fallback=''):
    '''
    File name for transcoding result: "{track} - {title}.{extension}"

    Title falls back to the provided value (usually the source file name) when
    the tags do not contain one. Track number is omitted when unknown.
    '''
    title = sanitize(metadata.title or fallback) or PLACEHOLDER
    track = sanitize(pad_track(metadata.track))
    if track:
        name = '{track} - {title}'.format(track=track, title=title)
    else:
        name = title
    return '{name}.{ext}'.format(name=name, ext=extension.lstrip('.'))



def output_path(output_dir, metadata, extension, source):
    '''Full path to the transcoding result of the source file'''
    stem = os.path.splitext(os.path.basename(source))[0]
    return os.path.join(output_dir, output_name(metadata, extension, fallback=stem))



def remote_path(destination, artist, album):
    '''Publishing destination for a single album'''
    return '{dest}/{artist}/{album}'.format(
        dest = destination.rstrip('/'),
        artist = sanitize(artist) or PLACEHOLDER,
        album = sanitize(album) or PLACEHOLDER,
    )
