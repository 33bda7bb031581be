"""Determine the address of the client behind trusted proxies.

The X-Forwarded-For chain is kept in full as received, it has forensic
value, but only the right hand side up to the first untrusted hop is
believed.
"""
__docformat__ = 'restructuredtext'

import ipaddress
import logging
import re

from pitchfork.exceptions import InvalidRemoteAddress

logger = logging.getLogger('pitchfork.cgi')

_commas = re.compile(',+')


def split_host_port(hostport):
    """Split "host:port" or "[v6host]:port" into its parts"""
    if hostport.startswith('['):
        host, sep, port = hostport[1:].partition(']:')
        if not sep:
            raise InvalidRemoteAddress("missing port in address %r"
                                       % hostport)
        return host, port
    if hostport.count(':') != 1:
        raise InvalidRemoteAddress("missing port in address %r" % hostport)
    return tuple(hostport.split(':'))


def normalize_chain(xff, remote):
    """Return "xff, remote" with all separators as ", "

    Spaces count as separators, so "a b" becomes "a, b".
    """
    addr = xff
    if addr:
        addr += ","
    addr += remote
    addr = _commas.sub(",", addr.replace(" ", ","))
    return addr.replace(",", ", ")


def parse_client_ip(remote, xff, trusted):
    """Return (ip, addr) for a request

    remote is the "host:port" of the connection, xff the value of the
    X-Forwarded-For header (possibly empty) and trusted a list of
    ipaddress networks of the proxies whose word is taken.

    ip is the rightmost address of the chain outside every trusted
    network, or the remote address when there is none.  An address that
    can not be parsed stops the walk, leaving the remote address.  addr
    is the normalized chain.

    Raises InvalidRemoteAddress when remote is not an address.
    """
    try:
        host, port = split_host_port(remote)
    except InvalidRemoteAddress as e:
        logger.error("RemoteAddr is invalid: %s", e)
        raise InvalidRemoteAddress("RemoteAddr is invalid")

    addr = normalize_chain(xff, host)

    addrs = addr.split(",")
    for i in range(len(addrs) - 1, -1, -1):
        part = addrs[i].strip()
        if not part:
            continue

        try:
            ip = ipaddress.ip_address(part)
        except ValueError:
            # can't trust the XFF at all
            logger.error("XFF: Unparseable IP >>>%s<<< encountered at "
                         "index %d in %r", part, i, addrs)
            break

        for net in trusted:
            if ip.version == net.version and ip in net:
                break
        else:
            return ip, addr

    try:
        return ipaddress.ip_address(host), addr
    except ValueError:
        raise InvalidRemoteAddress("Not a valid IP address: %s" % host)

# vim: set filetype=python sts=4 sw=4 et si :
