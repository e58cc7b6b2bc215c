from blinker import Namespace


# ================================================================
# Events / Signals
# ================================================================

netweave_signals = Namespace()

# sender: NetworkModel
model_updated_signal = netweave_signals.signal("model_updated")

# sender: Table
table_reset_signal = netweave_signals.signal("table_reset")
cache_built_signal = netweave_signals.signal("cache_built")

# sender: Table, kwargs: item=WrappedItem
item_finished_signal = netweave_signals.signal("item_finished")
item_filtered_signal = netweave_signals.signal("item_filtered")
item_updated_signal = netweave_signals.signal("item_updated")
