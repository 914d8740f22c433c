'''
Prepare batches of input files: unpack archives, relocate artwork
'''


import os
import shutil
import tempfile
import zipfile

from audioconvert import ARCHIVE_EXTENSIONS, LOSSLESS_EXTENSIONS
from audioconvert.cover import is_artwork, relocate_artwork
from audioconvert.errors import ConversionError


import logging
log = logging.getLogger(__name__)



TEMP_PREFIX = 'audioconvert'



class Batch:
    '''Input files that are converted into the same output directory'''


    def __init__(self, inputs, output_dir, name=None, workdir=None):
        self.inputs = list(inputs)
        self.output_dir = output_dir
        self.name = name
        self.workdir = workdir  # temporary directory removed on cleanup


    def __repr__(self):
        return '{cls}({name!r}, {count} files -> {output!r})'.format(
            cls = self.__class__.__name__,
            name = self.name,
            count = len(self.inputs),
            output = self.output_dir,
        )


    def cleanup(self):
        if self.workdir is not None:
            log.info('Cleaning up {}'.format(self.workdir))
            shutil.rmtree(self.workdir)
            self.workdir = None


    def __enter__(self):
        return self


    def __exit__(self, *a, **ka):
        self.cleanup()



def extension(filename):
    return os.path.splitext(filename)[1][1:].lower()



def is_music(filename):
    '''Check if file is a music file we can transcode'''
    return extension(filename) in LOSSLESS_EXTENSIONS



def is_archive(filename):
    return extension(filename) in ARCHIVE_EXTENSIONS



def output_directory(output_dir=None):
    '''Create output directory (temporary one if no path is given)'''
    if not output_dir:
        return tempfile.mkdtemp(prefix=TEMP_PREFIX)
    os.makedirs(output_dir, exist_ok=True)
    return output_dir



def collect_batches(paths, output_dir=None, cover_size=None):
    '''
    Group command line arguments into batches

    Every archive becomes a separate batch. All standalone music files form a
    single batch which comes last. Batches are produced lazily: an archive is
    unpacked only when its batch is requested.
    '''
    single_files = []
    for path in paths:
        if is_archive(path):
            yield unpack_archive(path, output_directory(output_dir), cover_size)
        elif is_music(path):
            single_files.append(path)
        else:
            log.error('Unknown file type: {}'.format(path))
    if single_files:
        yield Batch(single_files, output_directory(output_dir), name='files')



def unpack_archive(archive, output_dir, cover_size=None):
    '''
    Extract archive into a temporary directory and return a Batch of its
    music files. Artwork is moved straight into the output directory.
    '''
    workdir = tempfile.mkdtemp(prefix=TEMP_PREFIX)
    log.info('Unzipping {}'.format(os.path.basename(archive)))
    try:
        with zipfile.ZipFile(archive) as zf:
            zf.extractall(workdir)

        inputs = []
        for filename in find_files(workdir):
            if is_music(filename):
                inputs.append(filename)
            elif is_artwork(filename):
                relocate_artwork(filename, output_dir, size=cover_size)
            else:
                log.error('Unknown file type: {}'.format(os.path.relpath(filename, workdir)))
        if not inputs:
            raise ConversionError('No audio files found in {}'.format(archive))
    except (zipfile.BadZipFile, OSError) as error:
        shutil.rmtree(workdir, ignore_errors=True)
        raise ConversionError('Failed to unpack {}: {}'.format(archive, error)) from error
    except ConversionError:
        shutil.rmtree(workdir, ignore_errors=True)
        raise
    return Batch(inputs, output_dir, name=os.path.basename(archive), workdir=workdir)



def find_files(directory):
    '''Traverse file tree in alphabetical order (top down)'''
    for root, dirs, files in os.walk(directory, topdown=True):
        dirs.sort()  # ensure alphabetical traversal
        for filename in sorted(files):
            yield os.path.join(root, filename)
