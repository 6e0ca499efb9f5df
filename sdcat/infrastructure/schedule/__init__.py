from sdcat.infrastructure.schedule.runner import ScheduleConfig, ScheduleConfigs, ScheduleRunner

__all__ = ["ScheduleConfig", "ScheduleConfigs", "ScheduleRunner"]
