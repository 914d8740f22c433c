'''
Handle cover art that comes along with music files
'''

import os
import shutil

from PIL import Image

from audioconvert import ARTWORK_EXTENSIONS


import logging
log = logging.getLogger(__name__)



def is_artwork(filename):
    '''Check if file is a cover art image'''
    extension = os.path.splitext(filename)[1][1:].lower()
    return extension in ARTWORK_EXTENSIONS



def relocate_artwork(source, output_dir, size=None):
    '''
    Move cover art into output directory

    When size is given, the image is replaced with a thumbnail that fits into
    size x size box (aspect ratio is preserved, small images are not scaled up).
    Returns path to the relocated image.
    '''
    destination = os.path.join(output_dir, os.path.basename(source))
    log.info('Copying artwork {}'.format(os.path.basename(source)))
    os.makedirs(output_dir, exist_ok=True)
    if size:
        with Image.open(source) as image:
            image_format = image.format
            image.thumbnail((size, size))
            image.save(destination, format=image_format)
        if os.path.abspath(source) != os.path.abspath(destination):
            os.remove(source)
    else:
        shutil.move(source, destination)
    return destination
