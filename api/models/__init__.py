# Models package - import all models so Base.metadata knows every table
from models.waitlist_entry import WaitlistEntry

__all__ = ['WaitlistEntry']
