"""
peergrade
Peer evaluation of project deliverables: random juries, anonymous scores,
trimmed-mean final grades.
"""
__version__ = "1.0.0"
