from __future__ import annotations

CREATE_CALLS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS calls (
  ts_ms BIGINT,
  rpc TEXT,
  outcome TEXT,
  requests INTEGER,
  responses INTEGER,
  elapsed_ms DOUBLE
);
"""

SUMMARY_SQL_TEMPLATE = """
SELECT
  rpc,
  outcome,
  COUNT(*) AS n,
  AVG(elapsed_ms) AS avg_ms,
  quantile_cont(elapsed_ms, 0.50) AS p50_ms,
  quantile_cont(elapsed_ms, 0.95) AS p95_ms,
  SUM(requests) AS requests,
  SUM(responses) AS responses
FROM calls
{where_sql}
GROUP BY rpc, outcome
ORDER BY rpc, outcome
"""

INSERT_CALLS_SQL = """
INSERT INTO calls
  (ts_ms, rpc, outcome, requests, responses, elapsed_ms)
VALUES (?, ?, ?, ?, ?, ?)
"""
