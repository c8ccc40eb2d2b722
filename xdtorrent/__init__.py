"""BitTorrent building blocks: bencode, metainfo, filesystem drivers, trackers and network sessions."""

__version__ = "0.4.6"