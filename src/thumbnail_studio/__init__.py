"""
Thumbnail Studio - Layer-based thumbnail editor core.

Modules:
  config      - Paths, canvas defaults and logging setup (.env driven)
  errors      - User-facing, recoverable error types
  layers      - Image/text layer models (tagged by "type")
  workspace   - Persistence slot holding the serialized layer list
  store       - Ordered layer store with selection and save-on-mutation
  loader      - Bitmap loader for data URLs and remote images
  compositor  - Draws visible layers in z-order onto a canvas
  exporter    - PNG encoding and approximate color breakdown
  youtube     - Video id extraction and thumbnail candidate resolution
  editor      - Editor session tying intake, store, bitmaps and export together
"""
