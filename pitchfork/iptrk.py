"""IP address tracking, used to block addresses with repeated failures
(bad CSRF tokens, false password entries).
"""
__docformat__ = 'restructuredtext'

import datetime
import logging
import threading

logger = logging.getLogger('pitchfork.iptrk')


class IPtrkEntry:
    """One tracked address"""

    def __init__(self, ip, now):
        self.ip = ip
        self.count = 0
        self.entered = now
        self.last = now
        self.blocked = False

    def __repr__(self):
        return "<IPtrkEntry %s count=%d%s>" % (self.ip, self.count,
            self.blocked and " blocked" or "")


class IPTracker:
    """Count hits per address; an address is blocked above max hits

    Entries are forgotten expire seconds after their last hit, either
    through expire() or the sweeping thread started by start().
    """

    def __init__(self, max=5, expire=3600):
        self.max = max
        self.expire_seconds = expire
        self.entries = {}
        self.lock = threading.Lock()
        self._thread = None
        self._stop = threading.Event()

    @classmethod
    def from_config(cls, config):
        return cls(max=config["IPTRK_MAX"], expire=config["IPTRK_EXPIRE"])

    def _now(self):
        return datetime.datetime.now(datetime.timezone.utc)

    def count(self, ip):
        """Record a hit for ip, return True when the address is blocked"""
        ip = str(ip)
        with self.lock:
            now = self._now()
            entry = self.entries.get(ip)
            if entry is None:
                entry = self.entries[ip] = IPtrkEntry(ip, now)
            entry.count += 1
            entry.last = now
            entry.blocked = entry.count > self.max
        if entry.blocked:
            logger.warning("IPtrk: %s blocked after %d hits", ip, entry.count)
        return entry.blocked

    def is_blocked(self, ip):
        with self.lock:
            entry = self.entries.get(str(ip))
            return entry is not None and entry.count > self.max

    def reset(self, ip=""):
        """Forget about ip, or about all addresses when ip is empty

        Returns False when a given ip was not tracked.
        """
        with self.lock:
            if not ip:
                self.entries.clear()
                return True
            return self.entries.pop(str(ip), None) is not None

    def list(self):
        """Return the tracked entries ordered by address"""
        with self.lock:
            entries = sorted(self.entries.values(), key=lambda e: e.ip)
            for entry in entries:
                entry.blocked = entry.count > self.max
            return entries

    def expire(self, now=None):
        """Drop entries whose last hit is older than the expiry interval"""
        if now is None:
            now = self._now()
        limit = now - datetime.timedelta(seconds=self.expire_seconds)
        with self.lock:
            for ip, entry in list(self.entries.items()):
                if entry.last < limit:
                    del self.entries[ip]
        logger.debug("IPtrk: expired entries older than %s", limit)

    def _run(self, interval):
        while not self._stop.wait(interval):
            self.expire()

    def start(self, interval):
        """Start a thread expiring entries every interval seconds"""
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, args=(interval,),
                                        name="pitchfork-iptrk", daemon=True)
        self._thread.start()

    def stop(self):
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join()
        self._thread = None


def iptrk_list(ctx, args):
    entries = ctx.portal.iptrk.list()
    if not entries:
        ctx.outln("There are currently no entries")
        return
    timeformat = ctx.config["TIMEFORMAT"]
    ctx.out("%16s %16s %7s %10s %s\n" % ("Entered", "Last", "Status",
        "Count", "IP"))
    for t in entries:
        ctx.out("%16s %16s %7s %10d %s\n" % (t.entered.strftime(timeformat),
            t.last.strftime(timeformat), t.blocked and "blocked" or "okay",
            t.count, t.ip))


def iptrk_flush(ctx, args):
    ctx.portal.iptrk.reset("")
    ctx.outln("IPtrk flushed")


def iptrk_remove(ctx, args):
    ip = args[0]
    if not ip:
        raise ValueError("Missing argument, IP address required")
    if ctx.portal.iptrk.reset(ip):
        ctx.outln("IP removed from IPtrk table")
    else:
        ctx.outln("No such IP in IPtrk table")

# vim: set filetype=python sts=4 sw=4 et si :
