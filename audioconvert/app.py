'''
CLI application for converting lossless music files
'''


import os
import sys
from argparse import ArgumentParser

from audioconvert.batch import convert_batch
from audioconvert.config import merge, read_config
from audioconvert.errors import BatchAborted, ConversionError
from audioconvert.metadata import MetadataReader, read_metadata
from audioconvert.operations import build_operation
from audioconvert.publish import publish
from audioconvert.sources import collect_batches


import logging
log = logging.getLogger(__name__)



LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARN': logging.WARNING,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
}
LOG_FORMAT = '%(asctime)s %(levelname)-5s %(message)s'
LOG_TIME_FORMAT = '%I:%M%p'



def run(*a, **ka):
    '''
    CLI entry point
    '''
    # 1. Read configuration (defaults, YAML file, command line flags)
    # 2. Group inputs into batches, unpack archives
    # 3. Convert every batch concurrently
    # 4. Upload results (optional)
    args = parse_args(*a, **ka)
    try:
        config = merge(read_config(args.config) if args.config else {}, args.overrides)
    except ConversionError as error:
        sys.exit('Configuration error: {}'.format(error))
    setup_logging(config['log_level'])

    try:
        operation = build_operation(config['operation'])
        reader = MetadataReader(config['probe']) if config.get('probe') else read_metadata
        log.debug('Using {}'.format(operation))
        for batch in collect_batches(args.files, config['output_dir'], config['cover']):
            with batch:
                process_batch(batch, config, operation, reader)
    except BatchAborted as aborted:
        report_failure(aborted.error)
        sys.exit(1)
    except ConversionError as error:
        log.error(str(error))
        sys.exit(1)



def process_batch(batch, config, operation, reader):
    '''Convert a single batch and publish the results'''
    log.info('Transcoding {} files from {}'.format(len(batch.inputs), batch.name))
    result = convert_batch(
        batch.inputs,
        batch.output_dir,
        operation,
        pool_size = config['pool_size'],
        reader = reader,
        tag_outputs = config['tags'],
        log = log,
    )
    log.info('Transcoded {} files, {} bytes'.format(len(result), result.total_size))

    records = sorted(result.records, key=lambda record: record.source)
    metadata = records[0].metadata if records else None
    if metadata is not None:
        log.info('Metadata: artist={!r} album={!r}'.format(metadata.artist, metadata.album))

    destination = config['rsync']
    if destination and metadata is not None:
        publish(batch.output_dir, destination, metadata.album_artist, metadata.album)
    else:
        log.info('Output files: {}'.format(batch.output_dir))
    return result



def report_failure(error):
    '''Show the failing command and whatever it printed'''
    log.error(str(error))
    command = getattr(error, 'args_list', None)
    if command:
        log.error('Command: {}'.format(' '.join(command)))
    stderr = getattr(error, 'stderr', '')
    if stderr:
        log.error(stderr.rstrip())



def setup_logging(level):
    logging.basicConfig(
        level = LOG_LEVELS[level.upper()],
        format = LOG_FORMAT,
        datefmt = LOG_TIME_FORMAT,
    )



def parse_args(*a, **ka):
    parser = ArgumentParser(description='Batch convert lossless music files (or zip archives of them)')
    parser.add_argument(
        'files',
        metavar='FILE',
        nargs='*',
        help='FLAC files or zip archives with FLAC files',
    )
    parser.add_argument(
        '--config',
        default=None,
        help='Path to YAML configuration file',
    )
    parser.add_argument(
        '--ffmpeg-options',
        default=None,
        help='Options to pass to ffmpeg',
    )
    parser.add_argument(
        '--fdkaac-options',
        default=None,
        help='Options to pass to fdkaac (default: "-I -p 2 -m 5 -G 0")',
    )
    parser.add_argument(
        '--command',
        default=None,
        help='Shell command to use instead of ffmpeg and fdkaac, '
             'refer to file paths as "$input" and "$output"',
    )
    parser.add_argument(
        '--extension',
        default=None,
        help='Output file extension for --command',
    )
    parser.add_argument(
        '--log-level',
        default=None,
        type=str.upper,
        help='Log level: {} (default: INFO)'.format(', '.join(('DEBUG', 'INFO', 'WARN', 'ERROR'))),
    )
    parser.add_argument(
        '--output-dir',
        default=None,
        help='Output directory (default: new temporary directory)',
    )
    parser.add_argument(
        '--rsync',
        default=None,
        help='rsync destination, results are uploaded to DEST/artist/album',
    )
    parser.add_argument(
        '--pool-size',
        default=None,
        type=int,
        help='Number of files to convert concurrently (default: 8)',
    )
    parser.add_argument(
        '--cover-size',
        default=None,
        type=int,
        help='Resize artwork from archives to fit into a square of this size',
    )
    parser.add_argument(
        '--tags',
        action='store_true',
        default=None,
        help='Copy music tags to output files',
    )
    args = parser.parse_args(*a, **ka)

    if not args.files:
        parser.error('No files specified')
    if args.log_level is not None and args.log_level not in LOG_LEVELS:
        parser.error('Unknown log level: {}'.format(args.log_level))
    if args.pool_size is not None and args.pool_size < 1:
        parser.error('Pool size must be a positive number')
    if args.command and not args.extension:
        parser.error('--command requires --extension')
    if args.config and not os.path.isfile(args.config):
        parser.error('Configuration file not found: {}'.format(args.config))

    if args.command:
        operation = {'preset': 'command', 'command': args.command, 'extension': args.extension}
    else:
        operation = {
            'ffmpeg_options': args.ffmpeg_options,
            'fdkaac_options': args.fdkaac_options,
        }
    args.overrides = {
        'pool_size': args.pool_size,
        'log_level': args.log_level,
        'output_dir': args.output_dir,
        'rsync': args.rsync,
        'cover': args.cover_size,
        'tags': args.tags,
        'operation': operation,
    }
    return args



if __name__ == '__main__':
    run()
