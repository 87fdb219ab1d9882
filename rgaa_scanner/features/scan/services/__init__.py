"""
Scan Services

Organized by responsibility, in pipeline order:

1. discovery/ - Breadth-first page discovery over plain HTTP
   - page_discovery.py: crawl, fetch_content, is_reachable, link extraction

2. analysis/ - RGAA rule checks and scoring
   - rules.py: the ordered registry of rule checks and their constant tables
   - page_analyzer.py: AccessibilityAnalyzer, parses one page and runs every check
   - scoring.py: score (0-100) and letter grade from the findings

3. orchestration/ - Scan run lifecycle
   - executor.py: ScanExecutor, runs one scan to a terminal state under a timeout
   - progress.py: completion percentage for status polling
   - history.py: scan runs of a user

4. scan/ - ScanService, the entry points used by the API
   (start, concurrency gate, results, history, report)

5. issue/ - Findings queries and formatting for API responses

6. report/ - Plain-text report artifact

collaborators.py holds the quota and report generator contracts.
"""
