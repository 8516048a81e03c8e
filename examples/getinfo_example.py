#!/usr/bin/env python
"""
Lightning Client Example

Connects to a local lightningd, prints node info and then polls the peer
list. Restart the daemon while it runs to watch the client reconnect.

Configuration comes from the environment (LIGHTNING_RPC_PATH,
LIGHTNING_RPC_PORT, ...); see ClientConfig.from_env.
"""

import asyncio
import logging

from lightning_client import ClientConfig, LightningClient, LightningError
from lightning_client.telemetry.metrics import setup_metrics
from lightning_client.telemetry.tracer import setup_tracer

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

async def run(config: ClientConfig):
    """Query the daemon until interrupted"""
    async with LightningClient(config=config) as client:
        client.on("connect", lambda: logger.info("Connected to lightningd"))
        client.on("error", lambda error: logger.warning(f"Connection problem: {error}"))

        info = await client.getinfo()
        logger.info(f"Node {info.get('id')} ({info.get('alias')}), version {info.get('version')}")

        while True:
            try:
                peers = await asyncio.wait_for(client.listpeers(), 30)
                logger.info(f"{len(peers.get('peers', []))} peer(s)")
            except LightningError as e:
                logger.error(f"listpeers failed: {e}")
            except asyncio.TimeoutError:
                logger.warning("listpeers timed out, daemon may be restarting")
            await asyncio.sleep(5)

def main():
    """Run Lightning client example"""
    config = ClientConfig.from_env()
    if config.enable_telemetry:
        setup_tracer(config.service_name)
        setup_metrics(config.service_name)
    
    try:
        asyncio.run(run(config))
    except KeyboardInterrupt:
        logger.info("Received termination signal, exiting client...")
    
    logger.info("Client exited")

if __name__ == "__main__":
    main()
