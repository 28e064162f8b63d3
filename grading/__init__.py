"""
Attempt Grading Pipeline
grading/

Runs once per attempt, from the close operation only:
1. Scorer    - exact-set match per question, marks, stats, percentage
2. Analytics - subject / topic / difficulty breakdowns
3. Grades    - percentage → letter grade
4. Pipeline  - wires 1-3 together and derives pass/fail

Pure functions over Pydantic types; no database access in this package.
"""
