"""Web interface of Pitchfork.
"""

__docformat__ = 'restructuredtext'
