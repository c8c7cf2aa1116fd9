"""
Integration Tests for reviews, revision requests and curation notes
"""
from datetime import datetime, timedelta
import pytest
from httpx import AsyncClient

from thesis_repository.models.document import DocumentStatus


class TestReviews:
    @pytest.mark.asyncio
    async def test_faculty_opens_and_completes_review(
        self, client: AsyncClient, student_user, faculty_user, faculty_headers, document_factory
    ):
        document = await document_factory(student_user, status=DocumentStatus.UNDER_REVIEW)

        created = await client.post(
            '/api/v1/reviews',
            json={'document_id': str(document.id), 'comments': 'Methodology section is thin', 'score': 3},
            headers=faculty_headers,
        )
        assert created.status_code == 201
        review = created.json()
        assert review['status'] == 'pending'
        assert review['reviewer_id'] == str(faculty_user.id)

        status = await client.get(f'/api/v1/workflow/documents/{document.id}/status', headers=faculty_headers)
        assert status.json()['open_reviews'] == 1

        completed = await client.patch(
            f"/api/v1/reviews/{review['id']}",
            json={'status': 'completed', 'is_approved': True},
            headers=faculty_headers,
        )
        assert completed.status_code == 200
        assert completed.json()['completed_at'] is not None

        status = await client.get(f'/api/v1/workflow/documents/{document.id}/status', headers=faculty_headers)
        assert status.json()['open_reviews'] == 0
        assert status.json()['status'] == 'under_review'

    @pytest.mark.asyncio
    async def test_student_cannot_review(self, client: AsyncClient, student_user, auth_headers, document_factory):
        document = await document_factory(student_user)
        response = await client.post(
            '/api/v1/reviews', json={'document_id': str(document.id)}, headers=auth_headers
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_owner_lists_reviews(
        self, client: AsyncClient, student_user, auth_headers, faculty_headers, document_factory
    ):
        document = await document_factory(student_user)
        await client.post('/api/v1/reviews', json={'document_id': str(document.id)}, headers=faculty_headers)

        response = await client.get(f'/api/v1/documents/{document.id}/reviews', headers=auth_headers)

        assert response.status_code == 200
        assert len(response.json()) == 1

    @pytest.mark.asyncio
    async def test_missing_review(self, client: AsyncClient, faculty_headers):
        response = await client.patch(
            '/api/v1/reviews/00000000-0000-0000-0000-000000000000',
            json={'status': 'completed'},
            headers=faculty_headers,
        )
        assert response.status_code == 404
        assert response.json()['error']['code'] == 'REVIEW_NOT_FOUND'


class TestRevisionRequests:
    @pytest.mark.asyncio
    async def test_request_and_complete(
        self, client: AsyncClient, student_user, auth_headers, faculty_headers, document_factory
    ):
        document = await document_factory(student_user, status=DocumentStatus.NEEDS_REVISION)

        created = await client.post(
            '/api/v1/revision-requests',
            json={
                'document_id': str(document.id),
                'reason': 'Update the literature review',
                'deadline': (datetime.utcnow() + timedelta(days=14)).isoformat(),
            },
            headers=faculty_headers,
        )
        assert created.status_code == 201
        request = created.json()
        assert request['requested_from'] == str(student_user.id)

        completed = await client.patch(
            f"/api/v1/revision-requests/{request['id']}/status",
            json={'status': 'completed'},
            headers=auth_headers,
        )
        assert completed.status_code == 200
        assert completed.json()['status'] == 'completed'

        listed = await client.get(f'/api/v1/documents/{document.id}/revision-requests', headers=auth_headers)
        assert [r['id'] for r in listed.json()] == [request['id']]

    @pytest.mark.asyncio
    async def test_past_deadline_rejected(
        self, client: AsyncClient, student_user, faculty_headers, document_factory
    ):
        document = await document_factory(student_user)
        response = await client.post(
            '/api/v1/revision-requests',
            json={
                'document_id': str(document.id),
                'reason': 'Fix references',
                'deadline': (datetime.utcnow() - timedelta(days=1)).isoformat(),
            },
            headers=faculty_headers,
        )
        assert response.status_code == 400
        assert response.json()['error']['details'] == {'field': 'deadline'}


class TestCurationNotes:
    @pytest.mark.asyncio
    async def test_librarian_adds_and_resolves_note(
        self, client: AsyncClient, student_user, auth_headers, librarian_headers, document_factory
    ):
        document = await document_factory(student_user, status=DocumentStatus.CURATION)

        created = await client.post(
            '/api/v1/curation-notes',
            json={'document_id': str(document.id), 'note_type': 'metadata', 'note': 'Add ORCID for author'},
            headers=librarian_headers,
        )
        assert created.status_code == 201
        note = created.json()
        assert note['is_resolved'] is False

        resolved = await client.patch(
            f"/api/v1/curation-notes/{note['id']}", json={'is_resolved': True}, headers=librarian_headers
        )
        assert resolved.json()['is_resolved'] is True

        owner_view = await client.get(f'/api/v1/documents/{document.id}/curation-notes', headers=auth_headers)
        assert owner_view.status_code == 200
        assert len(owner_view.json()) == 1

    @pytest.mark.asyncio
    async def test_faculty_cannot_curate(self, client: AsyncClient, student_user, faculty_headers, document_factory):
        document = await document_factory(student_user, status=DocumentStatus.CURATION)
        response = await client.post(
            '/api/v1/curation-notes',
            json={'document_id': str(document.id), 'note_type': 'content', 'note': 'Looks fine'},
            headers=faculty_headers,
        )
        assert response.status_code == 403
