import ipaddress
import unittest

from pitchfork.cgi.ipresolver import (normalize_chain, parse_client_ip,
                                      split_host_port)
from pitchfork.exceptions import InvalidRemoteAddress

localnet = [ipaddress.ip_network('127.0.0.1/8', strict=False)]


class IPResolverTestCase(unittest.TestCase):
    def check(self, remote, xff, ip, addr, trusted=localnet):
        got_ip, got_addr = parse_client_ip(remote, xff, trusted)
        self.assertEqual(got_ip, ipaddress.ip_address(ip))
        self.assertEqual(got_addr, addr)

    def testLoopbackWithoutXFF(self):
        self.check('127.0.0.1:12345', '', '127.0.0.1', '127.0.0.1')

    def testUntrustedRemoteIgnoresXFF(self):
        self.check('192.0.2.1:12345', '192.0.2.2', '192.0.2.1',
                   '192.0.2.2, 192.0.2.1')

    def testTrustedProxy(self):
        self.check('127.0.0.1:12345', '192.0.2.2', '192.0.2.2',
                   '192.0.2.2, 127.0.0.1')

    def testSpaceSeparatedChain(self):
        self.check('127.0.0.1:12345', '127.0.0.1 192.0.2.2', '192.0.2.2',
                   '127.0.0.1, 192.0.2.2, 127.0.0.1')

    def testRightmostUntrustedWins(self):
        self.check('127.0.0.1:1', '198.51.100.7, 192.0.2.2, 127.0.0.5',
                   '192.0.2.2', '198.51.100.7, 192.0.2.2, 127.0.0.5, '
                   '127.0.0.1')

    def testEmptyPartsSkipped(self):
        self.check('127.0.0.1:1', '192.0.2.2,,, ', '192.0.2.2',
                   '192.0.2.2, 127.0.0.1')

    def testWiderTrustMovesLeft(self):
        chain = ['198.51.100.7', '192.0.2.2', '203.0.113.9', '127.0.0.1']
        xff = ', '.join(chain[:-1])
        trusted = list(localnet)
        positions = []
        for net in ('203.0.113.0/24', '192.0.2.0/24'):
            ip, addr = parse_client_ip('127.0.0.1:1', xff, trusted)
            positions.append(chain.index(str(ip)))
            trusted = trusted + [ipaddress.ip_network(net)]
        ip, addr = parse_client_ip('127.0.0.1:1', xff, trusted)
        positions.append(chain.index(str(ip)))
        self.assertEqual(positions, [2, 1, 0])

    def testUnparseableStopsWalk(self):
        self.check('127.0.0.1:1', '192.0.2.2, bogus', '127.0.0.1',
                   '192.0.2.2, bogus, 127.0.0.1')

    def testAllTrusted(self):
        self.check('127.0.0.1:1', '127.0.0.9', '127.0.0.1',
                   '127.0.0.9, 127.0.0.1')

    def testIPv6Remote(self):
        trusted = [ipaddress.ip_network('::1/128')]
        self.check('[::1]:8080', '2001:db8::1', '2001:db8::1',
                   '2001:db8::1, ::1', trusted)

    def testNoTrustedNetworks(self):
        self.check('127.0.0.1:1', '192.0.2.2', '127.0.0.1',
                   '192.0.2.2, 127.0.0.1', [])

    def testInvalidRemote(self):
        with self.assertRaises(InvalidRemoteAddress) as cm:
            parse_client_ip('127.0.0.1', '', localnet)
        self.assertEqual(str(cm.exception), 'RemoteAddr is invalid')
        self.assertRaises(InvalidRemoteAddress, parse_client_ip,
                          'nohost:1', '', localnet)

    def testSplitHostPort(self):
        self.assertEqual(split_host_port('192.0.2.1:80'), ('192.0.2.1', '80'))
        self.assertEqual(split_host_port('[2001:db8::1]:443'),
                         ('2001:db8::1', '443'))
        self.assertRaises(InvalidRemoteAddress, split_host_port,
                          '2001:db8::1')

    def testNormalizeChain(self):
        self.assertEqual(normalize_chain('', '192.0.2.1'), '192.0.2.1')
        self.assertEqual(normalize_chain('a b,,c', 'd'), 'a, b, c, d')

# vim: set filetype=python sts=4 sw=4 et si :
