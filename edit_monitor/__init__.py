# Edit Monitor: classifies editor changes as hand-written or auto-completion
# input, aggregates usage stats, and uploads events in periodic batches.
#
# Components:
#   config.py      - Settings (YAML-backed), uid generation, form validation
#   normalizer.py  - Data model (CodingEvent, EventType, ChangeType, DocumentChange)
#   classifier.py  - Edit classification heuristic
#   tracker.py     - Document change intake: classify, resolve VCS, record
#   state.py       - Drainable upload queues and running counters
#   stats.py       - Time-windowed stats, ratios, leaderboards, hourly series
#   store.py       - SQLite persistence of the stats log
#   events.py      - Stats change notifications
#   vcs.py         - Git repository/branch resolvers
#   mutations.py   - GraphQL and flat JSON payload builders
#   emitter.py     - Batch uploader
#   scheduler.py   - Periodic task with cancellation
#   report.py      - Text rendering of a stats snapshot
#   watcher.py     - Composition root, workspace watcher, CLI

__version__ = "1.0.0"
