import pytest
from fastapi.testclient import TestClient

from api.main import app, get_app_backend
from insights.backend import InMemoryBackend


DASHBOARD_CSV = """product,quarter,responsiveness,roadmap_alignment_committed,roadmap_alignment_total,cross_client_collaboration,continued_engagement_rate,continued_engagement_numerator,continued_engagement_denominator,quarterly_ideas,total_ideas,aging_ideas_count,aging_ideas_trend_q1,aging_ideas_trend_q2,aging_ideas_trend_q3,aging_ideas_trend_q4,year,candidate_ideas,in_development,archived_ideas,flagged_for_future,active_quarter,active_clients_representing,feature_name,vote_count,status,status_updated_at,client_voters,forum_name,forum_audience,forum_purpose
HotDocs,FY26 Q2,88,14,50,35,80,24,30,30,500,19,25,23,21,19,FY24,46,15,26,9,Q2,12,AI Integration,35,Committed,2025-01-15,"Client A, Client B",CSC,Client Steering Committee,Roadmap review
HotDocs,FY26 Q2,88,14,50,35,80,24,30,30,500,19,25,23,21,19,FY25,52,18,22,10,Q1,9,Mobile App,40,Under Review,2025-02-01,Client C,,,
HotDocs,FY26 Q2,88,14,50,35,80,24,30,30,500,19,25,23,21,19,FY25,99,99,99,99,Q2,99,Reporting Tools,12,Delivered,2025-01-30,"Client D,,Client E",Sprint Reviews,Engineering,Demos
"""


@pytest.fixture
def backend():
    return InMemoryBackend.seeded()


@pytest.fixture
def empty_backend():
    return InMemoryBackend()


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_app_backend] = lambda: backend
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def dashboard_csv():
    return DASHBOARD_CSV
