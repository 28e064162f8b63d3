"""
Exam Session Lifecycle
sessions/

- catalog    - read-only exam / question snapshots
- lifecycle  - start, save progress, submit, auto-submit, force-close
- collector  - answer upserts for open attempts
- violations - proctoring violation log
- sweeper    - deadline sweep run by the background worker
- records    - attempt serialisation for result views
"""
