"""
tensorprep Module Tests

- test_dtype.py, test_layout.py, test_storage.py, test_view.py: Core abstractions
- test_resize.py, test_shape_ops.py, test_normalize.py, test_cast.py: Operations
- test_pipeline.py, test_dispatch.py, test_presets.py: Pipelines
- test_config.py, test_settings.py, test_image.py, test_exceptions.py: Ambient modules
"""
