'''
Run external programs on behalf of the transcoding workers
'''


import os
import signal
from subprocess import Popen, PIPE, DEVNULL, TimeoutExpired
from threading import Thread

from audioconvert.errors import Cancelled, ProcessError


import logging
log = logging.getLogger(__name__)



POLL_INTERVAL = 0.1  # seconds
KILL_TIMEOUT = 5     # seconds between SIGTERM and SIGKILL
STDERR_ENCODING = 'utf-8'



class StreamReader:
    '''Read a child's output stream to the end from a background thread'''


    def __init__(self, stream):
        self.stream = stream
        self.chunks = []
        self.thread = Thread(target=self._consume, daemon=True)
        self.thread.start()


    def _consume(self):
        with self.stream:
            for chunk in iter(lambda: self.stream.read(8192), b''):
                self.chunks.append(chunk)


    def read(self):
        '''Wait for end of stream and return everything that was read'''
        self.thread.join()
        return b''.join(self.chunks)


    def text(self):
        return self.read().decode(STDERR_ENCODING, errors='replace')



def run_command(args, env=None, cancel=None, stage='command'):
    '''
    Execute a single external program and return its standard output (bytes)

    Raises ProcessError on non-zero exit status and Cancelled if the cancel
    event was set before the program finished.
    '''
    log.debug('Running {stage}: {args}'.format(stage=stage, args=args))
    process = start(args, stage, env=env, stdin=DEVNULL, stdout=PIPE, stderr=PIPE)
    stdout = StreamReader(process.stdout)
    stderr = StreamReader(process.stderr)

    wait_all([process], cancel)

    output = stdout.read()
    errors = stderr.text()
    if process.returncode != 0:
        raise ProcessError(args, process.returncode, errors, stage=stage)
    if errors:
        log.debug('{stage} stderr: {text}'.format(stage=stage, text=errors.strip()))
    return output



def run_pipeline(decode_args, encode_args, env=None, cancel=None):
    '''
    Run two programs with the output of the first one piped into the second

    Blocks until both have exited. If either of them fails, ProcessError is
    raised with stage set to 'decode' or 'encode' and with standard error of
    the failing program attached.
    '''
    log.debug('Running decode: {args}'.format(args=decode_args))
    log.debug('Running encode: {args}'.format(args=encode_args))
    decoder = start(decode_args, 'decode', env=env, stdin=DEVNULL, stdout=PIPE, stderr=PIPE)
    try:
        encoder = start(encode_args, 'encode', env=env, stdin=decoder.stdout, stdout=DEVNULL, stderr=PIPE)
    except ProcessError:
        decoder.stdout.close()
        terminate([decoder])
        raise
    decoder.stdout.close()  # encoder owns the read end now, decoder gets SIGPIPE if it exits
    decode_errors = StreamReader(decoder.stderr)
    encode_errors = StreamReader(encoder.stderr)

    wait_all([decoder, encoder], cancel)

    decode_stderr = decode_errors.text()
    encode_stderr = encode_errors.text()
    decode_failed = decoder.returncode != 0
    encode_failed = encoder.returncode != 0
    broken_pipe = decoder.returncode in (-signal.SIGPIPE, 128 + signal.SIGPIPE)

    if decode_failed and not (broken_pipe and encode_failed):
        raise ProcessError(decode_args, decoder.returncode, decode_stderr, stage='decode')
    if encode_failed:
        raise ProcessError(encode_args, encoder.returncode, encode_stderr, stage='encode')



def wait_all(processes, cancel=None):
    '''
    Wait until all processes exit

    When cancel (threading.Event) gets set in the meantime, the processes are
    terminated and Cancelled is raised.
    '''
    pending = list(processes)
    while pending:
        if cancel is not None and cancel.is_set():
            terminate(processes)
            raise Cancelled('Cancelled while waiting for {}'.format(
                ', '.join(str(p.args) for p in pending)
            ))
        try:
            pending[0].wait(timeout=POLL_INTERVAL if cancel is not None else None)
        except TimeoutExpired:
            continue
        pending = [p for p in pending if p.poll() is None]



def terminate(processes, timeout=KILL_TIMEOUT):
    '''
    Stop running processes together with everything they have started:
    SIGTERM to each process group first, SIGKILL after the timeout
    '''
    for process in processes:
        log.debug('Terminating {}'.format(process.args))
        signal_group(process, signal.SIGTERM)
    for process in processes:
        try:
            process.wait(timeout=timeout)
        except TimeoutExpired:
            log.warning('Killing {}'.format(process.args))
        signal_group(process, signal.SIGKILL)  # leftovers in the group
        process.wait()



def signal_group(process, signum):
    '''Send a signal to the process group led by the child'''
    try:
        os.killpg(process.pid, signum)
    except ProcessLookupError:  # the whole group has exited already
        pass



def start(args, stage, **popen_args):
    '''
    Start a child process in a new session, so that terminate() reaches its
    own children too. A missing executable is reported as ProcessError.
    '''
    try:
        return Popen(args, start_new_session=True, **popen_args)
    except OSError as error:
        raise ProcessError(args, None, str(error), stage=stage) from error
