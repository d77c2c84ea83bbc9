"""GeoService import and conflation.

Merges externally sourced point, line and polygon features into an
existing node/way/relation graph: deduplicates source records, conflates
incoming geometry against existing ways, synthesises new graph entities
for everything else, and remaps source attributes onto target tags.
"""

__version__ = "0.1.0"
