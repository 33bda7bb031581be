"""Image resizing for uploaded pictures (avatars, logos)."""
__docformat__ = 'restructuredtext'

import io

from PIL import Image, UnidentifiedImageError


def parse_size(maxsize):
    """Parse "WxH" into (width, height)"""
    try:
        w, h = maxsize.lower().split("x")
        size = int(w), int(h)
    except ValueError:
        raise ValueError("Invalid image size %r, expected WxH" % maxsize)
    if size[0] <= 0 or size[1] <= 0:
        raise ValueError("Invalid image size %r, expected WxH" % maxsize)
    return size


def resize(data, maxsize):
    """Return the image in data shrunk to fit maxsize ("WxH")

    The aspect ratio is kept and images are never enlarged.  The
    result keeps the format of the input, PNG when that is unknown.
    Raises ValueError when data is not an image.
    """
    size = parse_size(maxsize)
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError("Not an image: %s" % e)

    fmt = img.format or "PNG"
    img.thumbnail(size)

    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()

# vim: set filetype=python sts=4 sw=4 et si :
