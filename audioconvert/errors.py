'''
Exceptions raised while converting a batch of files
'''



class ConversionError(RuntimeError):
    '''Base class for all errors reported by audioconvert'''



class ConfigError(ConversionError):
    '''Invalid job configuration'''



class Cancelled(ConversionError):
    '''Raised in a worker after the batch was told to stop'''



class ProcessError(ConversionError):
    '''External program exited with non-zero status'''

    def __init__(self, args, returncode, stderr='', stage='command'):
        self.args_list = list(args) if not isinstance(args, str) else [args]
        self.returncode = returncode
        self.stderr = stderr
        self.stage = stage
        super().__init__(describe_failure(stage, returncode, self.args_list))



class ProbeError(ConversionError):
    '''Metadata probe failed or produced unparsable output'''

    def __init__(self, filename, message, stderr=''):
        self.filename = filename
        self.stderr = stderr
        super().__init__('Failed to read metadata from {!r}: {}'.format(filename, message))



class TranscodeError(ConversionError):
    '''
    Decoding or encoding process failed

    stage is one of 'command', 'decode', 'encode' and identifies the external
    program that failed; stderr holds whatever that program printed.
    '''

    def __init__(self, stage, args, returncode, stderr=''):
        self.stage = stage
        self.args_list = list(args) if not isinstance(args, str) else [args]
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(describe_failure(stage + ' stage', returncode, self.args_list))

    @classmethod
    def from_process_error(cls, error):
        return cls(error.stage, error.args_list, error.returncode, error.stderr)



class OutputVerificationError(ConversionError):
    '''Output file is missing or unusable after a successful transcode'''

    def __init__(self, filename, message):
        self.filename = filename
        super().__init__('{}: {}'.format(message, filename))



class OutputCollisionError(OutputVerificationError):
    '''Two inputs of the same batch map to one output path'''



class BatchAborted(ConversionError):
    '''
    Batch was stopped by the first failing item

    The original exception is available as the error attribute, result holds
    the outputs that were finished before the abort (result.complete is
    always False).
    '''

    def __init__(self, error, result):
        self.error = error
        self.result = result
        super().__init__('Batch aborted: {}'.format(error))



def describe_failure(stage, returncode, args):
    if returncode is None:
        status = 'could not be started'
    else:
        status = 'failed with exit code {}'.format(returncode)
    return '{stage} {status}: {command}'.format(
        stage = stage,
        status = status,
        command = ' '.join(args),
    )
