"""Domain services: ordering, board/list/task mutations, activity, realtime."""
