'''
Convert a batch of files with a fixed pool of worker threads

The first failure of any item stops the whole batch: other workers are told
to stop via a shared threading.Event, child processes that are still running
get terminated and convert_batch raises BatchAborted.
'''


import os
from collections import namedtuple
from queue import Queue
from threading import Event, Lock, Thread

import mutagen

from audioconvert import POOL_SIZE
from audioconvert.errors import (
    BatchAborted,
    Cancelled,
    ConfigError,
    OutputCollisionError,
    OutputVerificationError,
)
from audioconvert.metadata import read_metadata
from audioconvert.naming import output_path


import logging
log = logging.getLogger(__name__)



def execute_in_threadqueue(function, args_seq, num_threads=POOL_SIZE,
                           buffer_size=None, break_value=None, cancel=None):
    '''
    Execute a function with each argument from a given sequence.

    Execution is done in num_threads threads, args_seq is consumed lazily
    with a small lookahead (use buffer_size). break_value is a singleton
    object that can never occur in the args_seq - it is used to signal the end
    of the sequence to each thread.

    The first exception raised by function sets the cancel event: no new
    items are started after that, and the exception is re-raised here once
    all threads have exited. Items that observe the event raise Cancelled,
    which is not considered a failure.
    '''
    if num_threads < 1:
        raise ValueError('At least one worker thread is required, got {}'.format(num_threads))
    if buffer_size is None:
        buffer_size = num_threads
    if cancel is None:
        cancel = Event()

    queue = Queue(maxsize=buffer_size)
    failures = []
    failures_lock = Lock()

    def worker():
        # Keep receiving until break_value even after cancellation, so that
        # the producer never blocks on a full queue
        while True:
            task = queue.get()
            if task is break_value:
                break
            if cancel.is_set():
                log.debug('Skipping {task}: batch cancelled'.format(task=task))
                continue
            try:
                function(task, cancel)
            except Cancelled as e:
                log.debug('Stopped {task}: {e}'.format(task=task, e=e))
            except Exception as e:
                with failures_lock:
                    failures.append(e)
                cancel.set()

    threads = [Thread(target=worker, name='worker-{}'.format(i)) for i in range(num_threads)]
    for t in threads:
        t.start()

    try:
        for task in args_seq:  # queue tasks at the sane pace
            if task is break_value:
                raise ValueError('Break value can never occur in the args_seq')
            if cancel.is_set():
                break
            queue.put(task)
    except BaseException:
        cancel.set()
        raise
    finally:
        for t in threads:  # stop workers
            queue.put(break_value)
        for t in threads:
            t.join()

    if failures:
        raise failures[0]
    if cancel.is_set():
        raise Cancelled('Batch was cancelled')



OutputRecord = namedtuple('OutputRecord', 'path size source metadata')



class BatchResult:
    '''
    Outputs of a batch run

    Workers append records concurrently, every append goes through a lock.
    Order of records is not related to the order of inputs. complete is set
    only when every input has been converted.
    '''


    def __init__(self):
        self.complete = False
        self._records = []
        self._lock = Lock()


    def __repr__(self):
        return '<{cls}({count} files, complete={complete})>'.format(
            cls = self.__class__.__name__,
            count = len(self),
            complete = self.complete,
        )


    def append(self, record):
        with self._lock:
            self._records.append(record)


    @property
    def records(self):
        '''Snapshot of the records collected so far'''
        with self._lock:
            return list(self._records)


    def __len__(self):
        with self._lock:
            return len(self._records)


    def __iter__(self):
        return iter(self.records)


    @property
    def total_size(self):
        return sum(record.size for record in self.records)


    @property
    def paths(self):
        return [record.path for record in self.records]



class BatchJob:
    '''Parameters of a single batch run shared by all workers'''


    def __init__(self, output_dir, operation, reader=read_metadata,
                 tag_outputs=False, log=log):
        self.output_dir = output_dir
        self.operation = operation
        self.reader = reader
        self.tag_outputs = tag_outputs
        self.log = log
        self.result = BatchResult()
        self._claimed = set()
        self._claimed_lock = Lock()


    def __repr__(self):
        return '{cls}({output!r}, {operation!r})'.format(
            cls = self.__class__.__name__,
            output = self.output_dir,
            operation = self.operation,
        )


    def convert(self, source, cancel):
        '''Convert a single file: probe, name, transcode, verify'''
        if cancel.is_set():
            raise Cancelled('Not starting {}'.format(source))
        self.log.debug('Started {}'.format(source))

        metadata = self.reader(source, cancel=cancel)
        target = output_path(self.output_dir, metadata, self.operation.extension, source)
        self.claim(target, source)

        self.operation(source, target, cancel=cancel)

        verify_output(target)
        if self.tag_outputs:
            write_tags(target, metadata)
        size = verify_output(target)

        self.result.append(OutputRecord(target, size, source, metadata))
        self.log.info('Transcoded {name} ({size} bytes)'.format(
            name = os.path.basename(target),
            size = size,
        ))


    def claim(self, target, source):
        '''Reserve output path for a single source file'''
        with self._claimed_lock:
            if target in self._claimed:
                raise OutputCollisionError(
                    target,
                    'Target path collision for {!r}'.format(source)
                )
            self._claimed.add(target)



def verify_output(filename):
    '''Return size of the output file, fail if it is missing or empty'''
    try:
        size = os.stat(filename).st_size
    except OSError as error:
        raise OutputVerificationError(filename, 'Output file not found ({})'.format(
            error.strerror
        )) from error
    if size == 0:
        raise OutputVerificationError(filename, 'Output file is empty')
    return size



def write_tags(filename, metadata):
    '''Copy music tags to the transcoding result'''
    try:
        result = mutagen.File(filename, easy=True)
    except mutagen.MutagenError as error:
        raise OutputVerificationError(filename, 'Can not read tags ({})'.format(error)) from error
    if result is None:
        raise OutputVerificationError(filename, 'Output format is not recognized')
    try:
        if result.tags is None:
            result.add_tags()
        result.tags.update(metadata.as_tags())
        result.save()
    except (mutagen.MutagenError, ValueError, TypeError, KeyError) as error:
        # e.g. formats without easy tag interface, non-numeric track for MP4
        raise OutputVerificationError(filename, 'Can not write tags ({})'.format(error)) from error



def convert_batch(inputs, output_dir, operation, pool_size=POOL_SIZE,
                  reader=read_metadata, tag_outputs=False, log=log, cancel=None):
    '''
    Convert all input files into output_dir using pool_size worker threads

    Returns BatchResult with exactly one OutputRecord per input. On the first
    failure the remaining work is cancelled and BatchAborted is raised; its
    error attribute holds the original exception (normally ProbeError,
    TranscodeError or OutputVerificationError).

    reader is called as reader(filename, cancel=event) and must return
    TrackMetadata. cancel may be provided by the caller to stop the batch
    from another thread.
    '''
    if pool_size < 1:
        raise ConfigError('Pool size must be a positive number, got {}'.format(pool_size))
    inputs = list(inputs)
    job = BatchJob(output_dir, operation, reader=reader, tag_outputs=tag_outputs, log=log)
    log.debug('Initialized {} for {} files'.format(job, len(inputs)))

    try:
        execute_in_threadqueue(job.convert, inputs, num_threads=pool_size, cancel=cancel)
    except Exception as error:
        log.error('Batch failed after {} of {} files: {}'.format(
            len(job.result), len(inputs), error
        ))
        raise BatchAborted(error, job.result) from error

    job.result.complete = True
    log.debug('Batch finished: {} files, {} bytes'.format(
        len(job.result), job.result.total_size
    ))
    return job.result
