#!/usr/bin/env python3
import logging

from aws_cdk import App

from alert_config import AlertConfig
from alert_stack import AlertStack


logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

app = App()
config = AlertConfig.from_context(app.node)
stack_name = app.node.try_get_context("stackName") or f"AlertStack-{config.stage}"

AlertStack(
    app,
    stack_name,
    config=config,
)

app.synth()
