"""Gym admin package.

Organized by feature modules (events, attendance) with a thin Flask
controller layer over service/repository layers. The two engines that keep
state consistent under partial failure live here: the agenda mutation
controller and the attendance reconciler.
"""
