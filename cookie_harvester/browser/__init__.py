"""Browser package — engine adapter, per-request session and cookie extraction.

Everything that touches a browser lives here.  The rest of the
application depends only on the protocols in ``engine.py`` so the
concrete engine can be swapped (or faked in tests).
"""
