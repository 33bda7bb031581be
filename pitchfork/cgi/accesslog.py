"""Access log in JSON format, one object per line.

Entries are written by a background thread so requests never wait for
the disk.  A SIGUSR1 closes and reopens the file, which is what
logrotate needs after moving it away.  Before start() and after stop()
entries are written directly by the calling thread.
"""
__docformat__ = 'restructuredtext'

import json
import logging
import os
import queue
import signal
import threading

logger = logging.getLogger('pitchfork.accesslog')

# entries queued before callers have to wait
QUEUE_SIZE = 1000

_STOP = object()


class AccessLog:
    def __init__(self, filename):
        self.filename = filename
        self.queue = queue.Queue(maxsize=QUEUE_SIZE)
        self.lock = threading.Lock()
        self.running = False
        self._file = None
        self._thread = None
        self._reopen = threading.Event()
        self._old_handler = None

    # file handling, by the worker or under the lock

    def _open(self):
        self._close()
        if not self.filename:
            logger.info("No log file configured, skipping access logging")
            return
        logger.debug("Opening log file %r", self.filename)
        fd = os.open(self.filename, os.O_CREAT | os.O_APPEND | os.O_WRONLY,
                     0o600)
        self._file = os.fdopen(fd, "a", encoding="utf-8")

    def _try_open(self):
        """Reopen the file; while it can't be opened entries are
        appended one by one"""
        try:
            self._open()
        except OSError as e:
            logger.error("LogAccess() opening %s failed: %s",
                         self.filename, e)

    def _close(self):
        if self._file is not None:
            logger.debug("Closing log file")
            try:
                self._file.close()
            except OSError as e:
                logger.error("LogAccess() closing %s failed: %s",
                             self.filename, e)
            self._file = None

    def _append(self, txt):
        """Open, write and close, for when no file is kept open"""
        try:
            fd = os.open(self.filename,
                         os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o600)
            with os.fdopen(fd, "a", encoding="utf-8") as f:
                f.write(txt + "\n")
        except OSError as e:
            logger.error("LogAccess() writing to %s failed: %s",
                         self.filename, e)

    def _write(self, txt):
        if self._file is None:
            self._append(txt)
            return
        try:
            self._file.write(txt + "\n")
            self._file.flush()
        except (OSError, ValueError) as e:
            logger.error("LogAccess() writing to %s failed: %s",
                         self.filename, e)
            self._try_open()
            self._append(txt)

    # worker

    def _run(self):
        while True:
            if self._reopen.is_set():
                self._reopen.clear()
                logger.debug("Reopening log file")
                self._try_open()
            try:
                txt = self.queue.get(timeout=0.5)
            except queue.Empty:
                continue
            if txt is _STOP:
                break
            self._write(txt)

        self._close()

    def _signal(self, signum, frame):
        self.reopen()

    def start(self):
        """Open the file and start the writer thread

        Errors opening the file are raised here.
        """
        if not self.filename:
            return
        with self.lock:
            if self.running:
                return
            self._open()
            self._thread = threading.Thread(target=self._run,
                                            name="pitchfork-accesslog",
                                            daemon=True)
            self.running = True
            self._thread.start()

        usr1 = getattr(signal, "SIGUSR1", None)
        if usr1 is not None and \
                threading.current_thread() is threading.main_thread():
            self._old_handler = signal.signal(usr1, self._signal)

    def stop(self):
        """Write the queued entries, then stop the writer thread"""
        with self.lock:
            if not self.running:
                return
            self.running = False
            thread = self._thread
            self._thread = None
        self.queue.put(_STOP)
        thread.join()

        usr1 = getattr(signal, "SIGUSR1", None)
        if self._old_handler is not None and \
                threading.current_thread() is threading.main_thread():
            signal.signal(usr1, self._old_handler)
            self._old_handler = None

    def reopen(self):
        """Have the file reopened before the next entry is written"""
        self._reopen.set()

    def log(self, record):
        """Write record, a dict, as one line"""
        if not self.filename:
            return

        try:
            txt = json.dumps(record)
        except (TypeError, ValueError) as e:
            logger.error("Could not format access log message: %s", e)
            return

        with self.lock:
            if not self.running:
                # no writer (yet), write it ourselves
                self._append(txt)
                return
            # ahead of _STOP, the worker never takes the lock
            self.queue.put(txt)

# vim: set filetype=python sts=4 sw=4 et si :
