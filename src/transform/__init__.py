"""Image transform engine.

Submodules
----------
models
    Shared data types (selection rectangles, fit and encode results).
errors
    Exception taxonomy raised by the engine and its I/O boundary.
io_utils
    Decoding, encoding and file helpers.
fit
    Fit-to-canvas compositing over a blurred background.
crop
    Crop selection state machine and rotated pixel extraction.
resample
    Multi-pass step-down resizing.
compress
    Quality search against a byte budget.
log
    Logging setup shared by the CLI.
"""
