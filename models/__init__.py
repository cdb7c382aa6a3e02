from .dealership import Dealership
from .setting import Setting, SettingType
from .shift import Shift, ShiftStatus
