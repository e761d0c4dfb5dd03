from __future__ import annotations

import pytest

from tubelite.core.exceptions import BusinessError
from tubelite.i18n.codes import ErrorCode
from tubelite.services.channel_service import ChannelService, estimate_watch_hours
from tubelite.services.subscription_service import SubscriptionService
from tubelite.services.video_service import VideoService


@pytest.mark.asyncio
async def test_monetization_below_thresholds(db, make_profile, make_video) -> None:
    await make_profile(db, "creator", subscribers=250)
    # 7200 views of a one-hour video is 7200 watch hours but it is private
    await make_video(db, uploader_id="creator", duration="1:00:00", views=7200, visibility="private")
    await make_video(db, uploader_id="creator", duration="30:00", views=2000)

    status = await ChannelService.monetization_status(db, "creator")

    assert status.subscribers == 250
    assert status.subscriber_progress == 25.0
    assert status.watch_hours == 1000
    assert status.watch_hours_progress == 25.0
    assert not status.eligible


@pytest.mark.asyncio
async def test_monetization_eligible_caps_progress(db, make_profile, make_video) -> None:
    await make_profile(db, "creator", subscribers=1500)
    await make_video(db, uploader_id="creator", duration="1:00:00", views=5000)

    status = await ChannelService.monetization_status(db, "creator")

    assert status.eligible
    assert status.subscriber_progress == 100.0
    assert status.watch_hours == 5000
    assert status.watch_hours_progress == 100.0


@pytest.mark.asyncio
async def test_watch_hours_ignore_malformed_durations(db, make_video) -> None:
    broken = await make_video(db, duration=None, views=100)
    fine = await make_video(db, duration="2:00:00", views=3)

    assert estimate_watch_hours([broken, fine]) == 6


@pytest.mark.asyncio
async def test_ensure_profile_fills_blanks_only(db) -> None:
    first = await ChannelService.ensure_profile(db, "u1", "Provider Name", "p.png", "u1@test")
    assert first.display_name == "Provider Name"
    assert first.subscribers == 0

    await ChannelService.customize(db, "u1", {"display_name": "Chosen Name"})
    again = await ChannelService.ensure_profile(db, "u1", "Provider Name", "p2.png", "new@test")

    assert again.display_name == "Chosen Name"
    assert again.photo_url == "p.png"
    assert again.email == "new@test"


@pytest.mark.asyncio
async def test_customize_merges_and_propagates(db, make_profile, make_video) -> None:
    await make_profile(db, "viewer")
    await make_profile(db, "chef", display_name="Chef")
    video = await make_video(db, uploader_id="chef", uploader_name="Chef")
    await SubscriptionService.subscribe(db, "viewer", "chef")

    profile = await ChannelService.customize(
        db, "chef", {"display_name": "Chef Ana", "description": "Weekly recipes"}
    )
    await ChannelService.customize(db, "chef", {"banner_url": "banner.png"})

    assert profile.display_name == "Chef Ana"
    assert profile.description == "Weekly recipes"
    await db.refresh(video)
    assert video.uploader_name == "Chef Ana"
    rows = await SubscriptionService.list_subscriptions(db, "viewer")
    await db.refresh(rows[0])
    assert rows[0].channel_name == "Chef Ana"
    refreshed = await ChannelService.get_profile(db, "chef")
    assert refreshed.banner_url == "banner.png"
    assert refreshed.description == "Weekly recipes"


@pytest.mark.asyncio
async def test_get_channel_hides_private_videos_unless_owner(db, make_profile, make_video) -> None:
    await make_profile(db, "chef")
    await make_video(db, uploader_id="chef", title="public one")
    await make_video(db, uploader_id="chef", title="draft", visibility="private")

    _, public_videos = await ChannelService.get_channel(db, "chef")
    _, all_videos = await ChannelService.get_channel(db, "chef", include_hidden=True)
    content = await ChannelService.channel_content(db, "chef")

    assert [video.title for video in public_videos] == ["public one"]
    assert len(all_videos) == 2
    assert len(content) == 2
    assert await VideoService.list_videos_by_channel(db, "nobody") == []


@pytest.mark.asyncio
async def test_unknown_channel(db) -> None:
    with pytest.raises(BusinessError) as exc_info:
        await ChannelService.get_channel(db, "ghost")
    assert exc_info.value.code == ErrorCode.CHANNEL_NOT_FOUND
