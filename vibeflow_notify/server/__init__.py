"""HTTP surface: Slack events, publish trigger and admin APIs."""
