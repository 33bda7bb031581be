import io
import unittest

from PIL import Image

from pitchfork import image


def makeImage(size, fmt="PNG"):
    out = io.BytesIO()
    Image.new("RGB", size, (200, 10, 10)).save(out, format=fmt)
    return out.getvalue()


class ImageTestCase(unittest.TestCase):
    def testParseSize(self):
        self.assertEqual(image.parse_size("64x32"), (64, 32))
        self.assertEqual(image.parse_size("64X32"), (64, 32))
        for bad in ("", "64", "ax32", "0x10", "10x-1", "1x2x3"):
            self.assertRaises(ValueError, image.parse_size, bad)

    def testShrink(self):
        data = image.resize(makeImage((200, 100)), "50x50")
        img = Image.open(io.BytesIO(data))
        self.assertEqual(img.size, (50, 25))
        self.assertEqual(img.format, "PNG")

    def testNeverEnlarged(self):
        data = image.resize(makeImage((20, 10), "JPEG"), "100x100")
        img = Image.open(io.BytesIO(data))
        self.assertEqual(img.size, (20, 10))
        self.assertEqual(img.format, "JPEG")

    def testNotAnImage(self):
        self.assertRaises(ValueError, image.resize, b"plain text", "10x10")

# vim: set filetype=python sts=4 sw=4 et si :
