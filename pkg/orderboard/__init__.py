# Work-order Kanban board: repair pipeline, optimistic moves, persistence.
#
# Components:
#   pipeline.py   - The ten repair stages (OrderStatus) and membership test
#   schema.py     - Data model (WorkOrder, Customer, Vehicle, Column)
#   filters.py    - Date-range / free-text filtering and column grouping
#   store.py      - In-memory column store mutated by drags
#   drag.py       - Drag gesture state machine
#   mutator.py    - Optimistic status transitions with rollback
#   selection.py  - Keeps the inspected order pointing at live data
#   events.py     - Event bus carrying the error signal to the UI
#   board.py      - OrderBoard facade wiring everything for one organization
#   client.py     - Persistence clients (HTTP via requests, local SQLite)
#   repository.py - SQLite persistence layer behind board_server.py
#   config.py     - YAML configuration with environment overrides
