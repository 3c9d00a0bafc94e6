"""Search service package.

Layout:
- ``api``: HTTP endpoints for single and batch search.
- ``retrievers``: KNN execution against the vector store and normalization
  of its raw output.
- ``ranking``: Reciprocal Rank Fusion of several ranked lists.
- ``aggregation``: group-by with MinK/MaxK per group.
- ``projection``: field selection on result items.
- ``pipeline``: the executor sequencing the stages above.
- ``runtime``: service-local metrics facade.
"""
