"""Load shapes for the test profiles.

Each shape drives the total planned user count for the plan duration and
then stops the test. The per-scenario split comes from the fixed counts on
the user classes, so a shape only decides how fast the total is reached.

    constant: full load from the start (smoke, functional, mix)
    ramp:     linear ramp over the first third, then steady (load, stress)
    spike:    baseline load with one burst to full load (spike)
"""

import math

from locust import LoadTestShape


class PlanLoadShape(LoadTestShape):
    """Hold users for duration seconds, then stop."""

    abstract = True

    users = 1
    spawn_rate = 10
    duration = 60

    def tick(self):
        """Calculate current user target."""
        run_time = self.get_run_time()

        if run_time < self.duration:
            return (self.users, self.spawn_rate)

        return None


class RampPlanShape(PlanLoadShape):
    """Linear ramp to users, then hold until duration."""

    abstract = True

    ramp_fraction = 1 / 3

    def tick(self):
        """Calculate current user target."""
        run_time = self.get_run_time()
        ramp_time = self.duration * self.ramp_fraction

        if run_time < ramp_time:
            current_users = math.ceil((run_time / ramp_time) * self.users)
            spawn_rate = max(1, math.ceil(self.users / ramp_time))
            return (max(1, current_users), spawn_rate)

        elif run_time < self.duration:
            return (self.users, self.spawn_rate)

        return None


class SpikePlanShape(PlanLoadShape):
    """Baseline load with a single spike to full load mid-run.

    Pattern:
        - First 40% of duration: baseline (20% of users)
        - Next 20%: spike to all users
        - Remainder: back to baseline
    """

    abstract = True

    baseline_fraction = 0.2
    spike_start = 0.4
    spike_length = 0.2

    def tick(self):
        """Calculate current user target."""
        run_time = self.get_run_time()

        if run_time >= self.duration:
            return None

        progress = run_time / self.duration
        in_spike = self.spike_start <= progress < self.spike_start + self.spike_length

        if in_spike:
            return (self.users, max(self.spawn_rate, self.users))  # Fast spawn during spike
        baseline = max(1, math.ceil(self.users * self.baseline_fraction))
        return (baseline, self.spawn_rate)


SHAPES = {
    'constant': PlanLoadShape,
    'ramp': RampPlanShape,
    'spike': SpikePlanShape,
}
