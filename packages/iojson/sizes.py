"""Byte-size constants shared by envelope decoding and configuration.

This module is a leaf so both the config models and the envelope core can
import the default inbound limit without depending on each other.
"""

KIB = 1 << 10
MIB = 1 << 20

DEFAULT_MAX_DECODE_BYTES = 2 * MIB
