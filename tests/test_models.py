"""
Database Model Tests
"""
import pytest

from paperbrief.models import Summary, SummarySource, User, normalize_keywords
from paperbrief.schemas import SummaryResult
from paperbrief.services.summarizer import SummaryOutcome


def make_outcome(source="pdf+image", title="A title", keywords=("x", "y")):
    return SummaryOutcome(
        result=SummaryResult(title=title, summary="Body text", keywords=list(keywords)),
        source=source,
        input_text="extracted",
        pdf_name="doc.pdf",
        image_count=2,
    )


class TestSummarySource:
    """Test source label mapping"""

    def test_labels(self):
        assert SummarySource.PDF.label == 'pdf'
        assert SummarySource.IMAGE.label == 'image'
        assert SummarySource.PDF_IMAGE.label == 'pdf+image'

    def test_from_label(self):
        assert SummarySource.from_label('pdf+image') is SummarySource.PDF_IMAGE
        assert SummarySource.from_label('pdf') is SummarySource.PDF
        assert SummarySource.from_label('image') is SummarySource.IMAGE

    def test_unknown_label(self):
        with pytest.raises(ValueError):
            SummarySource.from_label('text')


class TestNormalizeKeywords:

    def test_filters_non_strings(self):
        assert normalize_keywords(['a', 1, None, 'b']) == ['a', 'b']

    def test_non_list(self):
        assert normalize_keywords('a,b') == []
        assert normalize_keywords(None) == []


class TestUser:
    """Test User model"""

    def test_create_user(self, app):
        """Should create user keyed by the identity subject"""
        from paperbrief import db

        with app.app_context():
            user = User(id='idp|abc123', email='a@example.com', name='A')
            db.session.add(user)
            db.session.commit()

            assert db.session.get(User, 'idp|abc123') is not None
            assert user.created_at is not None
            assert user.get_id() == 'idp|abc123'

    def test_delete_user_cascades(self, app):
        """Deleting a user should delete their summaries"""
        from paperbrief import db

        with app.app_context():
            db.session.add(User(id='u1'))
            db.session.add(User(id='u2'))
            db.session.add(Summary.from_outcome('u1', make_outcome(), 'Default'))
            db.session.add(Summary.from_outcome('u1', make_outcome(), 'Default'))
            db.session.add(Summary.from_outcome('u2', make_outcome(), 'Default'))
            db.session.commit()

            db.session.delete(db.session.get(User, 'u1'))
            db.session.commit()

            assert Summary.query.filter_by(user_id='u1').count() == 0
            assert Summary.query.filter_by(user_id='u2').count() == 1


class TestSummary:
    """Test Summary model"""

    def test_round_trip(self, app):
        """Source is stored in enum form and read back in label form"""
        from paperbrief import db
        from sqlalchemy import text

        with app.app_context():
            db.session.add(User(id='u1'))
            row = Summary.from_outcome('u1', make_outcome(), 'Default')
            db.session.add(row)
            db.session.commit()
            summary_id = row.id
            db.session.expire_all()

            stored = db.session.execute(
                text('SELECT source, keywords FROM summaries WHERE id = :id'), {'id': summary_id}
            ).one()
            assert stored[0] == 'pdf_image'

            loaded = db.session.get(Summary, summary_id)
            assert loaded.source is SummarySource.PDF_IMAGE
            data = loaded.to_dict()
            assert data['source'] == 'pdf+image'
            assert data['keywords'] == ['x', 'y']
            assert data['pdfName'] == 'doc.pdf'
            assert data['imageCount'] == 2
            assert data['createdAt']
            assert 'inputText' not in data
            assert loaded.to_dict(include_input=True)['inputText'] == 'extracted'

    def test_title_default_and_truncation(self):
        assert Summary.from_outcome('u1', make_outcome(title=None), 'Fallback').title == 'Fallback'
        assert Summary.from_outcome('u1', make_outcome(title=''), 'Fallback').title == 'Fallback'
        assert len(Summary.from_outcome('u1', make_outcome(title='x' * 500), 'Fallback').title) == 140

    def test_ids_are_unique(self, app):
        from paperbrief import db

        with app.app_context():
            db.session.add(User(id='u1'))
            rows = [Summary.from_outcome('u1', make_outcome(), 'Default') for _ in range(3)]
            db.session.add_all(rows)
            db.session.commit()

            assert len({r.id for r in rows}) == 3

    def test_to_dict_normalizes_raw_keywords(self, app):
        """Whatever JSON is stored, clients see a list of strings"""
        from paperbrief import db

        with app.app_context():
            db.session.add(User(id='u1'))
            row = Summary(
                user_id='u1',
                source=SummarySource.IMAGE,
                title='t',
                summary='s',
                keywords={'not': 'a list'},
            )
            db.session.add(row)
            db.session.commit()

            assert row.to_dict()['keywords'] == []
