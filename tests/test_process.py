'''
Unit tests for running external programs
'''


import os
import time
from tempfile import TemporaryDirectory
from threading import Event, Timer
from unittest import TestCase

from audioconvert.errors import Cancelled, ProcessError
from audioconvert.process import run_command, run_pipeline



class Command(TestCase):

    def test_output(self):
        self.assertEqual(run_command(['sh', '-c', 'printf hello']), b'hello')


    def test_failure(self):
        with self.assertRaises(ProcessError) as cm:
            run_command(['sh', '-c', 'echo oops >&2; exit 4'], stage='probe')
        error = cm.exception
        self.assertEqual(error.returncode, 4)
        self.assertEqual(error.stderr.strip(), 'oops')
        self.assertEqual(error.stage, 'probe')


    def test_missing_executable(self):
        with self.assertRaises(ProcessError) as cm:
            run_command(['no-such-program-audioconvert'])
        self.assertIsNone(cm.exception.returncode)
        self.assertIn('could not be started', str(cm.exception))


    def test_large_output(self):
        # more than a pipe buffer on both streams at once
        script = 'head -c 300000 /dev/zero; head -c 300000 /dev/zero >&2'
        self.assertEqual(len(run_command(['sh', '-c', script])), 300000)


    def test_cancel(self):
        cancel = Event()
        timer = Timer(0.2, cancel.set)
        timer.start()
        started = time.monotonic()
        try:
            with self.assertRaises(Cancelled):
                run_command(['sleep', '30'], cancel=cancel)
        finally:
            timer.cancel()
        self.assertLess(time.monotonic() - started, 10)


    def test_cancel_stops_grandchildren(self):
        with TemporaryDirectory() as tmp:
            marker = os.path.join(tmp, 'marker')
            cancel = Event()
            timer = Timer(0.2, cancel.set)
            timer.start()
            try:
                with self.assertRaises(Cancelled):
                    run_command(['sh', '-c', '(sleep 2; touch "$0") & wait', marker], cancel=cancel)
            finally:
                timer.cancel()
            time.sleep(3)
            self.assertFalse(os.path.exists(marker))



class Pipeline(TestCase):

    def setUp(self):
        self.tmp = TemporaryDirectory()
        self.output = os.path.join(self.tmp.name, 'out.bin')


    def tearDown(self):
        self.tmp.cleanup()


    def test_success(self):
        run_pipeline(['printf', 'abc'], ['sh', '-c', 'cat > "$0"', self.output])
        with open(self.output) as f:
            self.assertEqual(f.read(), 'abc')


    def test_decode_failure(self):
        with self.assertRaises(ProcessError) as cm:
            run_pipeline(
                ['sh', '-c', 'echo bad input >&2; exit 2'],
                ['sh', '-c', 'cat > "$0"', self.output],
            )
        self.assertEqual(cm.exception.stage, 'decode')
        self.assertEqual(cm.exception.returncode, 2)
        self.assertIn('bad input', cm.exception.stderr)


    def test_decode_failure_breaks_encoder(self):
        with self.assertRaises(ProcessError) as cm:
            run_pipeline(
                ['sh', '-c', 'echo bad input >&2; exit 2'],
                ['sh', '-c', 'test -n "$(cat)" || { echo empty >&2; exit 1; }'],
            )
        self.assertEqual(cm.exception.stage, 'decode')
        self.assertIn('bad input', cm.exception.stderr)


    def test_encode_failure(self):
        with self.assertRaises(ProcessError) as cm:
            run_pipeline(
                ['printf', 'abc'],
                ['sh', '-c', 'cat > /dev/null; echo cannot encode >&2; exit 5'],
            )
        self.assertEqual(cm.exception.stage, 'encode')
        self.assertEqual(cm.exception.returncode, 5)
        self.assertIn('cannot encode', cm.exception.stderr)


    def test_encoder_exits_early(self):
        # decoder is killed by SIGPIPE, encoder is the one to blame
        with self.assertRaises(ProcessError) as cm:
            run_pipeline(['yes'], ['sh', '-c', 'echo nope >&2; exit 1'])
        self.assertEqual(cm.exception.stage, 'encode')
        self.assertIn('nope', cm.exception.stderr)


    def test_missing_encoder(self):
        with self.assertRaises(ProcessError) as cm:
            run_pipeline(['printf', 'abc'], ['no-such-encoder-audioconvert'])
        self.assertEqual(cm.exception.stage, 'encode')


    def test_cancel(self):
        cancel = Event()
        timer = Timer(0.2, cancel.set)
        timer.start()
        started = time.monotonic()
        try:
            with self.assertRaises(Cancelled):
                run_pipeline(['sleep', '30'], ['sh', '-c', 'cat > /dev/null'], cancel=cancel)
        finally:
            timer.cancel()
        self.assertLess(time.monotonic() - started, 10)
