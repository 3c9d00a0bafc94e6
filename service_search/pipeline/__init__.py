"""Search orchestration.

``SearchExecutor`` sequences ranking, grouping, pagination and projection
and assembles the grouped or ungrouped response.
"""
