"""
molstruct: parse, relax and measure small molecular structures.
"""
