"""policies/ -- Governance rules evaluated against a resolved OrgGraph.

Layer rule: policies/ reads from core/ only. Rules never perform I/O and
never mutate the graph.
"""
