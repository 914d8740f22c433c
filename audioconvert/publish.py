'''
Upload transcoding results to a remote destination with rsync
'''


import shutil

from audioconvert.errors import ConversionError, ProcessError
from audioconvert.naming import remote_path
from audioconvert.process import run_command


import logging
log = logging.getLogger(__name__)



RSYNC = ('rsync', '-rv', '--mkpath')



def publish(output_dir, destination, artist, album, command=RSYNC, cleanup=True):
    '''
    Sync output directory to destination/artist/album and remove it afterwards

    Returns the full remote path.
    '''
    target = remote_path(destination, artist, album)
    log.info('Uploading to {}'.format(target))
    args = list(command) + [output_dir.rstrip('/') + '/', target + '/']
    try:
        output = run_command(args, stage='rsync')
    except ProcessError as error:
        log.error(error.stderr)
        raise ConversionError('Upload to {} failed: {}'.format(target, error)) from error
    log.debug(output.decode('utf-8', errors='replace'))
    if cleanup:
        log.info('Cleaning up {}'.format(output_dir))
        shutil.rmtree(output_dir)
    return target
