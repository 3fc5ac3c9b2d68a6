"""
BuildMarket Backend: Profile Service Unit Tests
================================================

What:  Saving and reading buyer playstyles.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from buildmarket.models.profile import BuyerProfile
from buildmarket.schemas.profile import PlaystyleUpdate
from buildmarket.services.profile_service import ProfileService
from buildmarket.services.result import ErrorKind


def stamp(profile):
    now = datetime.now(timezone.utc)
    profile.created_at = profile.created_at or now
    profile.updated_at = now


class TestSavePlaystyle:

    def setup_method(self):
        self.service = ProfileService()

    @pytest.mark.asyncio
    async def test_first_save_creates_profile(self, mock_db_session):
        mock_db_session.refresh.side_effect = stamp

        result = await self.service.save_playstyle(
            mock_db_session,
            "buyer-1",
            PlaystyleUpdate(vector=[7, 3, 5, 6, 4, 2, 8, 5], preferred_sport="basketball"),
        )

        assert result.ok
        mock_db_session.add.assert_called_once()
        assert result.value.playstyle_vector == [7, 3, 5, 6, 4, 2, 8, 5]
        assert result.value.playstyle_labels["shootVsDrive"] == 7
        assert result.value.preferred_sport.value == "basketball"

    @pytest.mark.asyncio
    async def test_later_save_keeps_preferred_sport(self, mock_db_session):
        existing = BuyerProfile(
            buyer_id="buyer-1", preferred_sport="hockey", playstyle_vector=[5] * 8
        )
        mock_db_session.get.return_value = existing
        mock_db_session.refresh.side_effect = stamp

        result = await self.service.save_playstyle(
            mock_db_session, "buyer-1", PlaystyleUpdate(vector=[1] * 8)
        )

        mock_db_session.add.assert_not_called()
        assert existing.playstyle_vector == [1] * 8
        assert result.value.preferred_sport.value == "hockey"

    @pytest.mark.parametrize(
        "vector",
        [[5] * 7, [5] * 9, [0, 5, 5, 5, 5, 5, 5, 5], [5, 5, 5, 5, 5, 5, 5, 11]],
    )
    def test_vector_must_be_eight_ratings_from_one_to_ten(self, vector):
        with pytest.raises(PydanticValidationError):
            PlaystyleUpdate(vector=vector)


class TestReadProfile:

    def setup_method(self):
        self.service = ProfileService()

    @pytest.mark.asyncio
    async def test_unknown_buyer_is_not_found(self, mock_db_session):
        result = await self.service.get_profile(mock_db_session, "nobody")

        assert result.error == ErrorKind.NOT_FOUND
        assert result.context == {"resource": "profile", "resource_id": "nobody"}

    @pytest.mark.asyncio
    async def test_vector_lookup_skips_query_without_buyer(self, mock_db_session):
        assert await self.service.playstyle_vector_for(mock_db_session, None) is None
        mock_db_session.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vector_lookup(self, mock_db_session, db_result):
        mock_db_session.execute.return_value = db_result(scalar=[2] * 8)

        assert await self.service.playstyle_vector_for(mock_db_session, "buyer-1") == [2] * 8
