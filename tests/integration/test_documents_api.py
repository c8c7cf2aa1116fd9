"""
Integration Tests for document endpoints
"""
import pytest
from httpx import AsyncClient

from thesis_repository.models.document import DocumentStatus
from thesis_repository.services.storage_service import storage_service
from tests.conftest import make_auth_headers


@pytest.fixture
def fake_storage(monkeypatch):
    """Replace S3 calls on the shared storage service"""
    uploaded = {}

    async def upload_file(key, content, content_type='application/pdf'):
        uploaded[key] = content
        return {'key': key, 'content_hash': 'hash', 'size_bytes': len(content)}

    async def get_signed_url(key, expires_in=None, timeout=None):
        return f'https://storage.test/{key}'

    monkeypatch.setattr(storage_service, 'upload_file', upload_file)
    monkeypatch.setattr(storage_service, 'get_signed_url', get_signed_url)
    return uploaded


class TestCreateDocument:
    @pytest.mark.asyncio
    async def test_create_document(self, client: AsyncClient, auth_headers, document_payload):
        response = await client.post('/api/v1/documents', json=document_payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['status'] == 'pending'
        assert data['published_at'] is None
        assert sorted(data['keywords']) == ['agriculture', 'machine learning']

    @pytest.mark.asyncio
    async def test_create_requires_auth(self, client: AsyncClient, document_payload):
        response = await client.post('/api/v1/documents', json=document_payload)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_rejects_blank_authors(self, client: AsyncClient, auth_headers, document_payload):
        document_payload['authors'] = ['  ']
        response = await client.post('/api/v1/documents', json=document_payload, headers=auth_headers)
        assert response.status_code == 422


class TestReadDocuments:
    @pytest.mark.asyncio
    async def test_list_only_published(self, client: AsyncClient, student_user, document_factory):
        published = await document_factory(student_user, status=DocumentStatus.PUBLISHED)
        await document_factory(student_user, status=DocumentStatus.UNDER_REVIEW)

        response = await client.get('/api/v1/documents')

        assert response.status_code == 200
        data = response.json()
        assert data['total'] == 1
        assert [item['id'] for item in data['items']] == [str(published.id)]

    @pytest.mark.asyncio
    async def test_unpublished_is_not_found_for_strangers(
        self, client: AsyncClient, student_user, other_student, document_factory
    ):
        document = await document_factory(student_user)

        anonymous = await client.get(f'/api/v1/documents/{document.id}')
        stranger = await client.get(
            f'/api/v1/documents/{document.id}', headers=make_auth_headers(other_student)
        )

        assert anonymous.status_code == 404
        assert stranger.status_code == 404
        assert stranger.json()['error']['code'] == 'DOCUMENT_NOT_FOUND'

    @pytest.mark.asyncio
    async def test_owner_sees_pending(self, client: AsyncClient, student_user, auth_headers, document_factory):
        document = await document_factory(student_user)
        response = await client.get(f'/api/v1/documents/{document.id}', headers=auth_headers)

        assert response.status_code == 200
        assert response.json()['view_count'] == 1

    @pytest.mark.asyncio
    async def test_search(self, client: AsyncClient, student_user, document_factory):
        await document_factory(student_user, status=DocumentStatus.PUBLISHED, title='Flood Mapping with Drones')
        await document_factory(student_user, status=DocumentStatus.PUBLISHED, title='Coastal Erosion Study')

        response = await client.get('/api/v1/documents/search', params={'q': 'drones'})

        assert response.status_code == 200
        assert [d['title'] for d in response.json()] == ['Flood Mapping with Drones']

    @pytest.mark.asyncio
    async def test_citation(self, client: AsyncClient, student_user, document_factory):
        document = await document_factory(
            student_user, status=DocumentStatus.PUBLISHED, title='Flood Mapping with Drones'
        )
        response = await client.get(
            f'/api/v1/documents/{document.id}/citation', params={'style': 'BibTeX', 'university': 'State U'}
        )

        assert response.status_code == 200
        data = response.json()
        assert data['style'] == 'bibtex'
        assert data['citation'].startswith('@thesis{')
        assert 'school = {State U}' in data['citation']

    @pytest.mark.asyncio
    async def test_unknown_citation_style(self, client: AsyncClient, student_user, document_factory):
        document = await document_factory(student_user, status=DocumentStatus.PUBLISHED)
        response = await client.get(f'/api/v1/documents/{document.id}/citation', params={'style': 'harvard'})
        assert response.status_code == 400


class TestFiles:
    @pytest.mark.asyncio
    async def test_upload_and_download(
        self, client: AsyncClient, student_user, auth_headers, document_factory, fake_storage
    ):
        document = await document_factory(student_user, status=DocumentStatus.PUBLISHED)

        upload = await client.post(
            f'/api/v1/documents/{document.id}/file',
            files={'file': ('thesis.pdf', b'%PDF-1.4 test', 'application/pdf')},
            data={'pages': '12'},
            headers=auth_headers,
        )
        assert upload.status_code == 201
        assert upload.json()['is_primary'] is True
        assert f'documents/{document.id}/thesis.pdf' in fake_storage

        download = await client.get(f'/api/v1/documents/{document.id}/download', headers=auth_headers)
        assert download.status_code == 200
        data = download.json()
        assert data['available'] is True
        assert data['url'] == f'https://storage.test/documents/{document.id}/thesis.pdf'
        assert data['download_count'] == 1

    @pytest.mark.asyncio
    async def test_upload_rejects_text_files(
        self, client: AsyncClient, student_user, auth_headers, document_factory, fake_storage
    ):
        document = await document_factory(student_user)
        response = await client.post(
            f'/api/v1/documents/{document.id}/file',
            files={'file': ('notes.txt', b'hello', 'text/plain')},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()['error']['code'] == 'INVALID_FILE_TYPE'

    @pytest.mark.asyncio
    async def test_download_without_file(self, client: AsyncClient, student_user, auth_headers, document_factory):
        document = await document_factory(student_user, status=DocumentStatus.PUBLISHED)
        response = await client.get(f'/api/v1/documents/{document.id}/download', headers=auth_headers)
        assert response.status_code == 404
