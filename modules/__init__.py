"""
Helper modules.

- target_resolver: pure printer selection logic
- image_generator: hosted image model client
"""
