from tubelite.models.comment import Comment
from tubelite.models.engagement import EngagementEntry
from tubelite.models.subscription import Subscription
from tubelite.models.user_profile import UserProfile
from tubelite.models.video import Video
from tubelite.models.video_vote import VideoVote

__all__ = ["Comment", "EngagementEntry", "Subscription", "UserProfile", "Video", "VideoVote"]
