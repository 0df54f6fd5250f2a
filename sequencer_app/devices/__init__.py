"""
Device gateway contract and command formatting.

Translates action steps into controller messages and provides an
in-process loopback device for demos and tests.
"""
