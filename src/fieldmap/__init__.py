"""FieldMap — waypoints, drawn shapes and GPS tracks with KML/GPX/JSON interchange."""
