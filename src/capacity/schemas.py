from pydantic import BaseModel, computed_field

from src.enums import Channel

class ChannelAvailability(BaseModel):
    """One seat pool of a sailing"""
    quota: int
    booked: int

    @computed_field
    @property
    def available(self) -> int:
        return max(0, self.quota - self.booked)

class SailingAvailability(BaseModel):
    """Both seat pools of a sailing at one instant"""
    sailing_id: int
    online: ChannelAvailability
    walk_in: ChannelAvailability

    def pool(self, channel: Channel) -> ChannelAvailability:
        return self.online if Channel(channel) == Channel.ONLINE else self.walk_in
