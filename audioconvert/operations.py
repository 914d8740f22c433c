'''
Transcode operations: how to turn one input file into one output file
'''


import os
import shlex

from audioconvert.errors import ConfigError, ProcessError, TranscodeError
from audioconvert.process import run_command, run_pipeline



SHELL = '/bin/sh'



class TranscodeOperation:
    '''
    Generic base class for transcode operations

    Operation objects are configured once per batch and are shared by all
    workers, so they must not be modified after initialization.
    '''

    extension = NotImplemented


    def __call__(self, input_filename, output_filename, cancel=None):
        '''Transcode a single file. Blocks until all child processes exit'''
        try:
            self.execute(input_filename, output_filename, cancel)
        except ProcessError as error:
            raise TranscodeError.from_process_error(error) from error


    def execute(self, input_filename, output_filename, cancel=None):
        '''
        Start external processes and wait for them.

        Must be implemented in each child class.
        '''
        raise NotImplementedError



class CommandTranscode(TranscodeOperation):
    '''
    Single shell command

    The command template is executed by /bin/sh with "input" and "output"
    environment variables bound to the source and destination paths, so the
    template refers to them as "$input" and "$output".
    '''


    def __init__(self, template, extension):
        if not template or not template.strip():
            raise ConfigError('Empty command template')
        self.template = template
        self.extension = extension.lstrip('.')


    def __repr__(self):
        return '<{cls}({template!r}, {ext!r})>'.format(
            cls = self.__class__.__name__,
            template = self.template,
            ext = self.extension,
        )


    def execute(self, input_filename, output_filename, cancel=None):
        env = dict(os.environ, input=input_filename, output=output_filename)
        run_command([SHELL, '-c', self.template], env=env, cancel=cancel)



class PipelineTranscode(TranscodeOperation):
    '''
    Decoder piped into encoder

    Arguments may contain "{input}" and "{output}" placeholders which are
    replaced with actual file paths.
    '''


    def __init__(self, decode_args, encode_args, extension):
        if not decode_args or not encode_args:
            raise ConfigError('Both decode and encode commands are required')
        self.decode_args = tuple(decode_args)
        self.encode_args = tuple(encode_args)
        self.extension = extension.lstrip('.')


    def __repr__(self):
        return '<{cls}(decode={dec!r}, encode={enc!r})>'.format(
            cls = self.__class__.__name__,
            dec = self.decode_args[0],
            enc = self.encode_args[0],
        )


    def execute(self, input_filename, output_filename, cancel=None):
        decode, encode = self.arguments(input_filename, output_filename)
        run_pipeline(decode, encode, cancel=cancel)


    def arguments(self, input_filename, output_filename):
        '''Argument vectors for decode and encode stages'''
        def fill(args):
            return [
                arg.replace('{input}', input_filename).replace('{output}', output_filename)
                for arg in args
            ]
        return fill(self.decode_args), fill(self.encode_args)



class FdkaacPipeline(PipelineTranscode):
    '''ffmpeg decodes to CAF stream, fdkaac encodes it to AAC in MP4 container'''

    FFMPEG_OPTIONS = ''
    FDKAAC_OPTIONS = '-I -p 2 -m 5 -G 0'


    def __init__(self, ffmpeg_options=None, fdkaac_options=None):
        if ffmpeg_options is None: ffmpeg_options = self.FFMPEG_OPTIONS
        if fdkaac_options is None: fdkaac_options = self.FDKAAC_OPTIONS
        self.ffmpeg_options = ffmpeg_options
        self.fdkaac_options = fdkaac_options
        super().__init__(
            decode_args = ['ffmpeg', '-hide_banner', '-i', '{input}']
                          + shlex.split(ffmpeg_options)
                          + ['-f', 'caf', '-'],
            encode_args = ['fdkaac'] + shlex.split(fdkaac_options) + ['-', '-o', '{output}'],
            extension = 'm4a',
        )


    def __repr__(self):
        return '<{cls}(ffmpeg_options={ff!r}, fdkaac_options={fdk!r})>'.format(
            cls = self.__class__.__name__,
            ff = self.ffmpeg_options,
            fdk = self.fdkaac_options,
        )



PRESETS = {
    None: FdkaacPipeline,
    'fdkaac': FdkaacPipeline,
    'command': CommandTranscode,
    'pipeline': PipelineTranscode,
}



def build_operation(options):
    '''Create TranscodeOperation from "operation" section of configuration'''
    options = dict(options or {})
    preset = options.pop('preset', None)
    try:
        operation = PRESETS[preset]
    except KeyError:
        raise ConfigError('Unknown operation preset: {}'.format(preset))

    if operation is FdkaacPipeline:
        return FdkaacPipeline(
            ffmpeg_options = options.get('ffmpeg_options'),
            fdkaac_options = options.get('fdkaac_options'),
        )
    if 'extension' not in options:
        raise ConfigError('Output extension is required for "{}" preset'.format(preset))
    if operation is CommandTranscode:
        return CommandTranscode(options.get('command', ''), options['extension'])
    return PipelineTranscode(
        split(options.get('decode')),
        split(options.get('encode')),
        options['extension'],
    )



def split(command):
    '''Accept command either as a list of arguments or as a shell-like string'''
    if not command:
        return []
    if isinstance(command, str):
        return shlex.split(command)
    return [str(arg) for arg in command]
