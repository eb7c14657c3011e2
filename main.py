#!/usr/bin/env python3
"""
Encode Negotiator - Main Entry Point
Resolve a consistent encoder configuration (profile, level, picture size, frame rate, bitrate)
against the H.264 level limits and the encoder device's capabilities
"""

from encode_negotiator.cli import main

if __name__ == '__main__':
    main()
